from fastapi import FastAPI

from app.api.v1.router import router as v1_router
from app.core.errors import ApiError, api_error_handler
from app.core.logging_setup import configure_logging
from app.core.telemetry import setup_telemetry

configure_logging()

app = FastAPI(title="Emlak API", version="0.1.0")

setup_telemetry(app)
app.add_exception_handler(ApiError, api_error_handler)
app.include_router(v1_router)
