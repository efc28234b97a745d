from app.models.base import Base  # noqa: F401

from app.models.listing import Listing  # noqa: F401
from app.models.image import Image  # noqa: F401
from app.models.address import Address  # noqa: F401
from app.models.konut_details import KonutDetails  # noqa: F401
from app.models.ticari_details import TicariDetails  # noqa: F401
from app.models.arsa_details import ArsaDetails  # noqa: F401
from app.models.vasita_details import VasitaDetails  # noqa: F401
