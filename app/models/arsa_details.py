from app.core.ids import gen_id
from sqlalchemy import Boolean, ForeignKey, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base


class ArsaDetails(Base):
    __tablename__ = "arsa_details"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: gen_id("ars"))
    listing_id: Mapped[str] = mapped_column(
        String, ForeignKey("listings.id", ondelete="CASCADE"), nullable=False, unique=True
    )

    # "tarla" | "bahce" | "konut_imarli" | "ticari_imarli"
    arsa_type: Mapped[str] = mapped_column(String(40), nullable=False)

    sqm: Mapped[float | None] = mapped_column(Numeric(12, 2, asdecimal=False), nullable=True)
    kaks: Mapped[float | None] = mapped_column(Numeric(6, 2, asdecimal=False), nullable=True)  # floor-area ratio

    allows_trade: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_eligible_for_credit: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
