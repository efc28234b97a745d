from app.core.ids import gen_id
from sqlalchemy import Boolean, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base


class VasitaDetails(Base):
    __tablename__ = "vasita_details"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: gen_id("vst"))
    listing_id: Mapped[str] = mapped_column(
        String, ForeignKey("listings.id", ondelete="CASCADE"), nullable=False, unique=True
    )

    # "otomobil" | "suv" | "atv" | "utv" | "van" | "motosiklet" | "bisiklet" | "ticari"
    vasita_type: Mapped[str] = mapped_column(String(40), nullable=False)

    brand: Mapped[str | None] = mapped_column(String(80), nullable=True)
    model: Mapped[str | None] = mapped_column(String(80), nullable=True)
    sub_model: Mapped[str] = mapped_column(String(120), nullable=False, default="")
    kilometer: Mapped[int | None] = mapped_column(Integer, nullable=True)
    fuel_type: Mapped[str] = mapped_column(String(20), nullable=False)
    transmission: Mapped[str | None] = mapped_column(String(20), nullable=True)
    color: Mapped[str | None] = mapped_column(String(40), nullable=True)

    has_warranty: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    has_damage_record: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    allows_trade: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
