from sqlalchemy import Boolean, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.ids import new_listing_id

from app.models.base import Base, TimestampMixin


class Listing(TimestampMixin, Base):
    __tablename__ = "listings"

    # Client may pre-generate the id before the first save (photos upload under it)
    id: Mapped[str] = mapped_column(String, primary_key=True, default=new_listing_id)

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    price: Mapped[float] = mapped_column(Numeric(14, 2, asdecimal=False), nullable=False)

    # "konut" | "ticari" | "arsa" | "vasita"
    property_type: Mapped[str] = mapped_column(String(20), nullable=False)
    # "satilik" | "kiralik"
    listing_status: Mapped[str] = mapped_column(String(20), nullable=False, default="satilik")

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_featured: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    views_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    contact_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    images = relationship("Image", order_by="Image.order_index", lazy="raise")
    address = relationship("Address", uselist=False, lazy="raise")
    konut_details = relationship("KonutDetails", uselist=False, lazy="raise")
    ticari_details = relationship("TicariDetails", uselist=False, lazy="raise")
    arsa_details = relationship("ArsaDetails", uselist=False, lazy="raise")
    vasita_details = relationship("VasitaDetails", uselist=False, lazy="raise")
