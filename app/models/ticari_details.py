from app.core.ids import gen_id
from sqlalchemy import Boolean, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base


class TicariDetails(Base):
    __tablename__ = "ticari_details"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: gen_id("tcr"))
    listing_id: Mapped[str] = mapped_column(
        String, ForeignKey("listings.id", ondelete="CASCADE"), nullable=False, unique=True
    )

    # "dukkan" | "depo" | "ofis" | ... | "otobus_hatti" | "taksi_hatti"
    ticari_type: Mapped[str] = mapped_column(String(40), nullable=False)

    gross_sqm: Mapped[float | None] = mapped_column(Numeric(10, 2, asdecimal=False), nullable=True)
    net_sqm: Mapped[float | None] = mapped_column(Numeric(10, 2, asdecimal=False), nullable=True)
    room_count: Mapped[int | None] = mapped_column(Integer, nullable=True)
    building_age: Mapped[int | None] = mapped_column(Integer, nullable=True)
    floor: Mapped[int | None] = mapped_column(Integer, nullable=True)
    total_floors: Mapped[int | None] = mapped_column(Integer, nullable=True)
    heating: Mapped[str | None] = mapped_column(String(40), nullable=True)

    allows_trade: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_eligible_for_credit: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
