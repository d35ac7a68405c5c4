"""Create shipments table

Revision ID: 20260301_create_shipments
Revises: 
Create Date: 2026-03-01 09:00:00.000000
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20260301_create_shipments"
down_revision = None
branch_labels = None
depends_on = None

DESTINATIONS = ("GUY", "SVG", "SLU", "BIM", "DOM", "GRD", "SKN", "ANU", "SXM", "FSXM")
CARRIERS = ("FEDEX", "DHL", "USPS", "UPS", "AMAZON")
MODES = ("air", "sea")
STATUSES = ("received", "intransit", "delivered")


def _string_enum(values, name):
    return sa.Enum(*values, name=name, native_enum=False, length=16)


def upgrade():
    op.create_table(
        "shipments",
        sa.Column("shipment_id", sa.BigInteger(), autoincrement=False, nullable=False),
        sa.Column("customer_id", sa.BigInteger(), nullable=False),
        sa.Column("origin", sa.String(), nullable=True),
        sa.Column("destination", _string_enum(DESTINATIONS, "destination"), nullable=False),
        sa.Column("weight", sa.Float(), nullable=False),
        sa.Column("volume", sa.Float(), nullable=False),
        sa.Column("carrier", _string_enum(CARRIERS, "carrier"), nullable=False),
        sa.Column("mode", _string_enum(MODES, "shippingmode"), nullable=False),
        sa.Column("status", _string_enum(STATUSES, "shipmentstatus"), nullable=False),
        sa.Column("arrival_date", sa.Date(), nullable=False),
        sa.Column("departure_date", sa.Date(), nullable=True),
        sa.Column("delivered_date", sa.Date(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("shipment_id"),
    )
    for column in ("customer_id", "destination", "carrier", "status", "arrival_date"):
        op.create_index(f"ix_shipments_{column}", "shipments", [column])


def downgrade():
    for column in ("customer_id", "destination", "carrier", "status", "arrival_date"):
        op.drop_index(f"ix_shipments_{column}", table_name="shipments")
    op.drop_table("shipments")
