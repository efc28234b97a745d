from alembic import op
import sqlalchemy as sa

revision = "0001_listings_and_media"
down_revision = None
branch_labels = None
depends_on = None


def _listing_fk():
    return sa.Column(
        "listing_id",
        sa.String(),
        sa.ForeignKey("listings.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )


def upgrade():
    op.create_table(
        "listings",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("price", sa.Numeric(14, 2), nullable=False),
        sa.Column("property_type", sa.String(length=20), nullable=False),
        sa.Column("listing_status", sa.String(length=20), nullable=False, server_default="satilik"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("is_featured", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("views_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("contact_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint("price > 0", name="ck_listings_price_positive"),
    )
    op.create_index("ix_listings_active_created", "listings", ["is_active", "created_at"])

    op.create_table(
        "images",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("listing_id", sa.String(), sa.ForeignKey("listings.id", ondelete="CASCADE"), nullable=False),
        sa.Column("cloudinary_id", sa.String(length=300), nullable=False, unique=True),
        sa.Column("url", sa.Text(), nullable=False),
        sa.Column("order_index", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_cover", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_images_listing_order", "images", ["listing_id", "order_index"])

    op.create_table(
        "addresses",
        sa.Column("id", sa.String(), primary_key=True),
        _listing_fk(),
        sa.Column("province", sa.String(length=120), nullable=False),
        sa.Column("district", sa.String(length=120), nullable=False),
        sa.Column("neighborhood", sa.String(length=160), nullable=True),
        sa.Column("full_address", sa.Text(), nullable=True),
    )

    op.create_table(
        "konut_details",
        sa.Column("id", sa.String(), primary_key=True),
        _listing_fk(),
        sa.Column("konut_type", sa.String(length=40), nullable=False),
        sa.Column("gross_sqm", sa.Numeric(10, 2), nullable=True),
        sa.Column("net_sqm", sa.Numeric(10, 2), nullable=True),
        sa.Column("room_count", sa.String(length=10), nullable=True),
        sa.Column("building_age", sa.Integer(), nullable=True),
        sa.Column("floor", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_floors", sa.Integer(), nullable=True),
        sa.Column("heating", sa.String(length=40), nullable=True),
        sa.Column("has_balcony", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("has_elevator", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_furnished", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("allows_trade", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_eligible_for_credit", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("in_site", sa.Boolean(), nullable=False, server_default=sa.false()),
    )

    op.create_table(
        "ticari_details",
        sa.Column("id", sa.String(), primary_key=True),
        _listing_fk(),
        sa.Column("ticari_type", sa.String(length=40), nullable=False),
        sa.Column("gross_sqm", sa.Numeric(10, 2), nullable=True),
        sa.Column("net_sqm", sa.Numeric(10, 2), nullable=True),
        sa.Column("room_count", sa.Integer(), nullable=True),
        sa.Column("building_age", sa.Integer(), nullable=True),
        sa.Column("floor", sa.Integer(), nullable=True),
        sa.Column("total_floors", sa.Integer(), nullable=True),
        sa.Column("heating", sa.String(length=40), nullable=True),
        sa.Column("allows_trade", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_eligible_for_credit", sa.Boolean(), nullable=False, server_default=sa.false()),
    )

    op.create_table(
        "arsa_details",
        sa.Column("id", sa.String(), primary_key=True),
        _listing_fk(),
        sa.Column("arsa_type", sa.String(length=40), nullable=False),
        sa.Column("sqm", sa.Numeric(12, 2), nullable=True),
        sa.Column("kaks", sa.Numeric(6, 2), nullable=True),
        sa.Column("allows_trade", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_eligible_for_credit", sa.Boolean(), nullable=False, server_default=sa.false()),
    )

    op.create_table(
        "vasita_details",
        sa.Column("id", sa.String(), primary_key=True),
        _listing_fk(),
        sa.Column("vasita_type", sa.String(length=40), nullable=False),
        sa.Column("brand", sa.String(length=80), nullable=True),
        sa.Column("model", sa.String(length=80), nullable=True),
        sa.Column("sub_model", sa.String(length=120), nullable=False, server_default=""),
        sa.Column("kilometer", sa.Integer(), nullable=True),
        sa.Column("fuel_type", sa.String(length=20), nullable=False),
        sa.Column("transmission", sa.String(length=20), nullable=True),
        sa.Column("color", sa.String(length=40), nullable=True),
        sa.Column("has_warranty", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("has_damage_record", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("allows_trade", sa.Boolean(), nullable=False, server_default=sa.false()),
    )


def downgrade():
    op.drop_table("vasita_details")
    op.drop_table("arsa_details")
    op.drop_table("ticari_details")
    op.drop_table("konut_details")
    op.drop_table("addresses")
    op.drop_index("ix_images_listing_order", table_name="images")
    op.drop_table("images")
    op.drop_index("ix_listings_active_created", table_name="listings")
    op.drop_table("listings")
