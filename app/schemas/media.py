from pydantic import BaseModel


class UploadOut(BaseModel):
    success: bool = True
    id: str
    url: str
    folder: str


class MediaDeleteOut(BaseModel):
    success: bool
    id: str
