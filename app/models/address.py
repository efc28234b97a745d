from app.core.ids import gen_id
from sqlalchemy import ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base


class Address(Base):
    __tablename__ = "addresses"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: gen_id("adr"))
    listing_id: Mapped[str] = mapped_column(
        String, ForeignKey("listings.id", ondelete="CASCADE"), nullable=False, unique=True
    )

    province: Mapped[str] = mapped_column(String(120), nullable=False)
    district: Mapped[str] = mapped_column(String(120), nullable=False)
    neighborhood: Mapped[str | None] = mapped_column(String(160), nullable=True)
    full_address: Mapped[str | None] = mapped_column(Text, nullable=True)
