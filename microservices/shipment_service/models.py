"""
Shipment Service Data Models

Shipments, their append-only history, mutation requests and the display
models used by the public tracking view.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


# ====================
# Enum Types
# ====================

class ShipmentStatus(str, Enum):
    """Shipment status; transitions are not validated"""
    PENDING = "pending"
    QUOTED = "quoted"
    CONFIRMED = "confirmed"
    IN_TRANSIT = "in-transit"
    OUT_FOR_DELIVERY = "out-for-delivery"
    DELIVERED = "delivered"
    HELD = "held"
    CANCELLED = "cancelled"


class PaymentStatus(str, Enum):
    UNPAID = "unpaid"
    PAID = "paid"


# ====================
# Core Data Models
# ====================

class ContactInfo(BaseModel):
    """Sender or receiver details"""
    name: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    phone: Optional[str] = None


class ParcelDetails(BaseModel):
    description: Optional[str] = None
    weight: Optional[str] = Field(None, description="Free text, e.g. '2.5' or '12 lbs'")
    quantity: Optional[str] = None
    type: Optional[str] = None

    @field_validator("weight", "quantity", mode="before")
    @classmethod
    def _stringify(cls, v):
        if v is None or isinstance(v, str):
            return v
        return str(v)


class Coordinates(BaseModel):
    lat: float
    lng: float


class ShipmentEvent(BaseModel):
    """
    One history entry; created only by the history ledger.

    Stored entries are read as written: unknown keys are kept and the
    timestamp is not reparsed, so writing the list back never alters them.
    """
    model_config = ConfigDict(extra="allow")

    status: Optional[str] = None
    location: Optional[str] = None
    note: Optional[str] = None
    timestamp: Any = None
    date: Optional[str] = Field(None, description="Display date, e.g. 'Mar 01, 2024'")
    time: Optional[str] = Field(None, description="Display time")

    @field_validator("status", "location", "note", "date", "time", mode="before")
    @classmethod
    def _stringify(cls, v):
        if v is None or isinstance(v, str):
            return v
        return str(v)

    def to_stored(self) -> Dict[str, Any]:
        """JSON document as persisted; only keys the entry actually carries"""
        stored = dict(self.model_extra or {})
        stored.update(self.model_dump(mode="json", exclude_unset=True))
        return stored


class Shipment(BaseModel):
    """Shipment record"""
    id: Optional[str] = None
    tracking_number: str
    user_id: Optional[str] = Field(None, description="Owner (sender) user ID")
    status: ShipmentStatus = ShipmentStatus.PENDING
    payment_status: PaymentStatus = PaymentStatus.UNPAID
    current_location: Optional[str] = None
    price: Optional[float] = None
    sender_info: ContactInfo = Field(default_factory=ContactInfo)
    receiver_info: ContactInfo = Field(default_factory=ContactInfo)
    parcel_details: ParcelDetails = Field(default_factory=ParcelDetails)
    coordinates: Optional[Coordinates] = None
    history: List[ShipmentEvent] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# ====================
# Request Models
# ====================

class CreateShipmentRequest(BaseModel):
    """Create a shipment owned by the effective user"""
    sender_info: ContactInfo
    receiver_info: ContactInfo
    parcel_details: ParcelDetails = Field(default_factory=ParcelDetails)
    price: Optional[float] = Field(None, ge=0)
    coordinates: Optional[Coordinates] = None


class ShipmentUpdate(BaseModel):
    """Field-level shipment update; only fields that are set are written"""
    status: Optional[ShipmentStatus] = None
    payment_status: Optional[PaymentStatus] = None
    current_location: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)
    coordinates: Optional[Coordinates] = None
    sender_info: Optional[ContactInfo] = None
    receiver_info: Optional[ContactInfo] = None
    parcel_details: Optional[ParcelDetails] = None


class LogEventRequest(BaseModel):
    """Append a movement to the shipment history"""
    status: ShipmentStatus
    location: str = Field(..., min_length=1)
    note: Optional[str] = None


# ====================
# Response Models
# ====================

class LedgerResult(BaseModel):
    """Outcome of a history append"""
    appended: bool
    requires_notification: bool = False
    shipment: Shipment
    event: Optional[ShipmentEvent] = None
    attempts: int = 1


class ShipmentListResponse(BaseModel):
    shipments: List[Shipment] = Field(default_factory=list)
    count: int = 0


class DeleteShipmentResponse(BaseModel):
    success: bool
    tracking_number: str


# ====================
# Tracking View (display mapping)
# ====================

class TrackingEvent(BaseModel):
    date: str = ""
    time: str = ""
    location: str = "Unknown"
    description: str = "Shipment update"
    status: str = ""
    timestamp: Optional[str] = None
    note: Optional[str] = None


class TrackingItem(BaseModel):
    description: str = "Shipment Items"
    quantity: int = 1
    value: str = "0"
    sku: str = "GENERIC"


class TrackingParty(BaseModel):
    name: str = "Unknown"
    street: str = "Unknown"
    city: str = ""
    country: str = ""
    email: str = ""


class TrackingView(BaseModel):
    """Tolerant display shape of a shipment row"""
    id: Optional[str] = None
    status: str = "pending"
    origin: str = "Unknown"
    destination: str = "Unknown"
    estimated_arrival: str = "TBD"
    current_location: str = "Pending"
    weight: str = "0 kg"
    dimensions: str = "N/A"
    service_type: str = "Standard"
    history: List[TrackingEvent] = Field(default_factory=list)
    items: List[TrackingItem] = Field(default_factory=list)
    sender: TrackingParty = Field(default_factory=TrackingParty)
    recipient: TrackingParty = Field(default_factory=TrackingParty)
    price: Optional[float] = None
    payment_status: Optional[str] = None
    coordinates: Optional[Dict[str, Any]] = None
    created_at: Optional[str] = None


class HealthResponse(BaseModel):
    """Health check response"""
    status: str
    service: str
    port: int
    version: str
    dependencies: Dict[str, str] = Field(default_factory=dict)


class ServiceInfo(BaseModel):
    """Service information"""
    service: str
    version: str
    description: str
    capabilities: List[str] = Field(default_factory=list)
    routes: List[str] = Field(default_factory=list)
