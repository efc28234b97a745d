from app.core.ids import gen_id
from sqlalchemy import Boolean, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base


class KonutDetails(Base):
    __tablename__ = "konut_details"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: gen_id("knt"))
    listing_id: Mapped[str] = mapped_column(
        String, ForeignKey("listings.id", ondelete="CASCADE"), nullable=False, unique=True
    )

    # "daire" | "villa" | "mustakil_ev" | "bina" | "prefabrik"
    konut_type: Mapped[str] = mapped_column(String(40), nullable=False)

    gross_sqm: Mapped[float | None] = mapped_column(Numeric(10, 2, asdecimal=False), nullable=True)
    net_sqm: Mapped[float | None] = mapped_column(Numeric(10, 2, asdecimal=False), nullable=True)
    room_count: Mapped[str | None] = mapped_column(String(10), nullable=True)  # e.g. "3+1"
    building_age: Mapped[int | None] = mapped_column(Integer, nullable=True)
    floor: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_floors: Mapped[int | None] = mapped_column(Integer, nullable=True)
    heating: Mapped[str | None] = mapped_column(String(40), nullable=True)

    has_balcony: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    has_elevator: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_furnished: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    allows_trade: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_eligible_for_credit: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    in_site: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
