"""
Shipment model - one row per accepted CSV shipment.

Weights are stored in grams and volumes in cubic centimeters.
"""
from sqlalchemy import Column, String, DateTime, Date, Float, BigInteger, Enum as SQLEnum
from datetime import datetime
import enum
from app.db.database import Base

# Largest value a BIGINT id column holds
MAX_ID = 2**63 - 1


class Destination(str, enum.Enum):
    GUY = "GUY"
    SVG = "SVG"
    SLU = "SLU"
    BIM = "BIM"
    DOM = "DOM"
    GRD = "GRD"
    SKN = "SKN"
    ANU = "ANU"
    SXM = "SXM"
    FSXM = "FSXM"


class Carrier(str, enum.Enum):
    FEDEX = "FEDEX"
    DHL = "DHL"
    USPS = "USPS"
    UPS = "UPS"
    AMAZON = "AMAZON"


class ShippingMode(str, enum.Enum):
    AIR = "air"
    SEA = "sea"


class ShipmentStatus(str, enum.Enum):
    RECEIVED = "received"
    INTRANSIT = "intransit"
    DELIVERED = "delivered"


def _string_enum(enum_cls):
    return SQLEnum(
        enum_cls,
        native_enum=False,
        values_callable=lambda enum_cls: [member.value for member in enum_cls],
        validate_strings=True,
        length=16,
    )


class Shipment(Base):
    __tablename__ = "shipments"

    shipment_id = Column(BigInteger, primary_key=True, autoincrement=False)
    customer_id = Column(BigInteger, nullable=False, index=True)
    origin = Column(String, nullable=True)
    destination = Column(_string_enum(Destination), nullable=False, index=True)
    weight = Column(Float, nullable=False)  # grams
    volume = Column(Float, nullable=False)  # cubic centimeters
    carrier = Column(_string_enum(Carrier), nullable=False, index=True)
    mode = Column(_string_enum(ShippingMode), nullable=False)
    status = Column(_string_enum(ShipmentStatus), nullable=False, index=True)
    arrival_date = Column(Date, nullable=False, index=True)
    departure_date = Column(Date, nullable=True)
    delivered_date = Column(Date, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
