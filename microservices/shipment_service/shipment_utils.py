"""
Shipment utilities

Reference number generation, address/location normalization and the tolerant
display mapping used by the tracking view. The mapping helpers never raise on
malformed rows; missing pieces fall back to placeholder values.
"""

import math
import random
import re
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Tuple

from .models import TrackingEvent, TrackingItem, TrackingParty, TrackingView

TRACKING_PREFIX = "PFX"
TICKET_PREFIX = "TKT"
REFERENCE_MIN = 10_000_000
REFERENCE_MAX = 99_999_999

DEFAULT_ORIGIN_CITY = "Central"
DATE_FORMAT = "%b %d, %Y"
TIME_FORMAT = "%H:%M"

# First run of letters/spaces that ends at a comma or the end of the address
_ORIGIN_CITY = re.compile(r"[A-Za-z\u00C0-\u00FF\s]+(?=,|$)")
_LETTER = re.compile(r"[A-Za-z]")


# ====================
# Reference numbers
# ====================

def generate_reference(prefix: str) -> str:
    """``<prefix>-<8 digits>``; uniqueness is enforced by the datastore, not here"""
    return f"{prefix}-{random.randint(REFERENCE_MIN, REFERENCE_MAX)}"


def generate_tracking_number() -> str:
    return generate_reference(TRACKING_PREFIX)


def generate_ticket_number() -> str:
    return generate_reference(TICKET_PREFIX)


# ====================
# Address / location
# ====================

def normalize_address(address: Optional[str]) -> List[str]:
    if not address or not isinstance(address, str):
        return []
    parts = re.sub(r"\n+", ",", address).split(",")
    return [p.strip() for p in parts if p.strip()]


def extract_city_country(address: Optional[str]) -> Tuple[str, str]:
    """(city, country) from the last two address segments"""
    parts = normalize_address(address)
    if not parts:
        return "", ""
    if len(parts) == 1:
        return parts[0], ""
    return parts[-2], parts[-1]


def origin_city(address: Optional[str]) -> str:
    if address and isinstance(address, str):
        match = _ORIGIN_CITY.search(address)
        if match and match.group(0).strip():
            return match.group(0).strip()
    return DEFAULT_ORIGIN_CITY


def initial_location(address: Optional[str]) -> str:
    """Location of the synthetic creation event"""
    return f"{origin_city(address)} Logistics Center"


def normalize_for_comparison(value: Any) -> str:
    """Trim, collapse internal whitespace and case-fold"""
    return " ".join(str(value or "").split()).casefold()


# ====================
# Display formatting
# ====================

def _parse_timestamp(timestamp: Any) -> Optional[datetime]:
    if isinstance(timestamp, datetime):
        return timestamp
    if not timestamp or not isinstance(timestamp, str):
        return None
    raw = timestamp.strip()
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(raw)
    except ValueError:
        return None


def format_timestamp(timestamp: Any) -> Tuple[str, str]:
    """(date, time) display strings; ("", "") when unparseable"""
    parsed = _parse_timestamp(timestamp)
    if parsed is None:
        return "", ""
    return parsed.strftime(DATE_FORMAT), parsed.strftime(TIME_FORMAT)


def format_status_label(status: Optional[str]) -> str:
    if not status:
        return "Shipment update"
    return str(status).replace("-", " ")


def format_weight(value: Any) -> str:
    """
    >>> format_weight("2.5")
    '2.5 kg'
    >>> format_weight("12 lbs")
    '12 lbs'
    """
    if value is None:
        return "0 kg"
    raw = str(value).strip()
    if not raw:
        return "0 kg"
    if _LETTER.search(raw):
        return raw
    return f"{raw} kg"


def _as_dict(value: Any) -> Dict[str, Any]:
    if isinstance(value, Mapping):
        return dict(value)
    if hasattr(value, "model_dump"):
        return value.model_dump()
    return {}


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


def _price(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        price = float(value)
    except (TypeError, ValueError):
        return None
    return price if math.isfinite(price) else None


def _price_text(price: Optional[float]) -> str:
    if price is None:
        return "0"
    return str(int(price)) if price.is_integer() else str(price)


def map_shipment_history(history: Any) -> List[TrackingEvent]:
    if not isinstance(history, (list, tuple)):
        return []

    events = []
    for raw in history:
        event = _as_dict(raw)
        status = _text(event.get("status") or event.get("state"))
        date, time = format_timestamp(event.get("timestamp"))
        note = event.get("note")
        description = (
            event.get("description")
            or note
            or (f"Status updated to {format_status_label(status)}" if status else "Shipment update")
        )
        events.append(TrackingEvent(
            date=_text(event.get("date")) or date,
            time=_text(event.get("time")) or time,
            location=_text(event.get("location") or event.get("city") or event.get("place")) or "Unknown",
            description=_text(description),
            status=status,
            timestamp=_text(event.get("timestamp")) or None,
            note=_text(note) or None,
        ))
    return events


def _party(info: Dict[str, Any], city: str, country: str) -> TrackingParty:
    return TrackingParty(
        name=_text(info.get("name")) or "Unknown",
        street=_text(info.get("address")) or "Unknown",
        city=city or "",
        country=country or "",
        email=_text(info.get("email")),
    )


def map_shipment_row(row: Any) -> TrackingView:
    """Tracking view of a shipment row (dict or model)"""
    data = _as_dict(row)
    sender = _as_dict(data.get("sender_info"))
    receiver = _as_dict(data.get("receiver_info"))
    parcel = _as_dict(data.get("parcel_details"))

    sender_address = _text(sender.get("address"))
    receiver_address = _text(receiver.get("address"))
    sender_parts = extract_city_country(sender_address)
    receiver_parts = extract_city_country(receiver_address)

    sender_city = _text(sender.get("city")) or sender_parts[0]
    sender_country = _text(sender.get("country")) or sender_parts[1]
    receiver_city = _text(receiver.get("city")) or receiver_parts[0]
    receiver_country = _text(receiver.get("country")) or receiver_parts[1]

    origin_fallback = ", ".join(p for p in (sender_city, sender_country) if p)
    destination_fallback = ", ".join(p for p in (receiver_city, receiver_country) if p)

    price = _price(data.get("price"))
    estimated = data.get("estimated_delivery")
    estimated_date = format_timestamp(estimated)[0] if estimated else ""

    items = data.get("items")
    if isinstance(items, list) and items:
        mapped_items = []
        for item in items:
            item = _as_dict(item)
            try:
                mapped_items.append(TrackingItem(
                    description=_text(item.get("description")) or "Shipment Items",
                    quantity=int(item.get("quantity") or 1),
                    value=_text(item.get("value")) or "0",
                    sku=_text(item.get("sku")) or "GENERIC",
                ))
            except (TypeError, ValueError):
                continue
    else:
        mapped_items = [TrackingItem(
            description=_text(parcel.get("description")) or "Shipment Items",
            value=_price_text(price),
        )]

    coordinates = data.get("coordinates")
    status = data.get("status")
    payment_status = data.get("payment_status")

    return TrackingView(
        id=_text(data.get("tracking_number") or data.get("id")) or None,
        status=_text(getattr(status, "value", status)) or "pending",
        origin=sender_address or origin_fallback or "Unknown",
        destination=receiver_address or destination_fallback or "Unknown",
        estimated_arrival=estimated_date or "TBD",
        current_location=_text(data.get("current_location")) or "Pending",
        weight=format_weight(parcel.get("weight") or data.get("weight")),
        dimensions=_text(data.get("dimensions")) or "N/A",
        service_type=_text(data.get("service_type")) or "Standard",
        history=map_shipment_history(data.get("history")),
        items=mapped_items,
        sender=_party(sender, sender_city, sender_country),
        recipient=_party(receiver, receiver_city, receiver_country),
        price=price,
        payment_status=_text(getattr(payment_status, "value", payment_status)) or None,
        coordinates=_as_dict(coordinates) or None,
        created_at=_text(data.get("created_at")) or None,
    )


__all__ = [
    "TRACKING_PREFIX",
    "TICKET_PREFIX",
    "generate_reference",
    "generate_tracking_number",
    "generate_ticket_number",
    "normalize_address",
    "extract_city_country",
    "origin_city",
    "initial_location",
    "normalize_for_comparison",
    "format_timestamp",
    "format_status_label",
    "format_weight",
    "map_shipment_history",
    "map_shipment_row",
]
