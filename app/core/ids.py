import uuid

def gen_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex}"


def new_listing_id() -> str:
    # listing ids are bare UUIDs; the admin wizard pre-generates them client-side
    return str(uuid.uuid4())
