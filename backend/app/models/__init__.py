from .shipment import Shipment, Destination, Carrier, ShippingMode, ShipmentStatus, MAX_ID

__all__ = [
    "MAX_ID",
    "Shipment",
    "Destination",
    "Carrier",
    "ShippingMode",
    "ShipmentStatus",
]
