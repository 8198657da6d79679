"""
Shipment status classification.

This is the only place the reconciliation rule lives. Every route, the bulk
check and the CSV export call through here.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ShipmentStatus(str, Enum):
    """Reconciliation state of an inbound declaration."""

    COMPLETE = "complete"  # saldo fully declared
    ERROR = "error"  # outbounds exist but saldo is off (under or over declared)
    WAITING = "waiting"  # nothing declared outbound yet
    UNKNOWN = "unknown"  # saldo missing or unreadable

    @property
    def label(self) -> str:
        return _LABELS[self]


_LABELS = {
    ShipmentStatus.COMPLETE: "Complete",
    ShipmentStatus.ERROR: "Error",
    ShipmentStatus.WAITING: "Waiting for Outbounds",
    ShipmentStatus.UNKNOWN: "Unknown",
}


def coerce_saldo(value: Any) -> float | None:
    """Return saldo as a number, or None when it is absent or not numeric."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None


def classify_status(saldo: Any, outbounds_count: int) -> ShipmentStatus:
    """
    Derive the status from the remaining balance and the outbound count.

    Evaluated in order:
        saldo == 0                      -> COMPLETE
        saldo != 0 and outbounds > 0    -> ERROR
        saldo != 0 and outbounds == 0   -> WAITING
        anything else                   -> UNKNOWN
    """
    number = coerce_saldo(saldo)
    if number is None:
        return ShipmentStatus.UNKNOWN
    if number == 0:
        return ShipmentStatus.COMPLETE
    if outbounds_count > 0:
        return ShipmentStatus.ERROR
    if outbounds_count == 0:
        return ShipmentStatus.WAITING
    return ShipmentStatus.UNKNOWN


def outbounds_count(arrival: dict[str, Any]) -> int:
    outbounds = arrival.get("Outbounds")
    return len(outbounds) if isinstance(outbounds, list) else 0


def classify_arrival(arrival: dict[str, Any]) -> ShipmentStatus:
    """Classify a raw arrival record from the master records file."""
    return classify_status(arrival.get("saldo"), outbounds_count(arrival))


def saldo_label(saldo: Any) -> str | None:
    """Badge shown on the inbound detail view: Complete, Incomplete or nothing."""
    number = coerce_saldo(saldo)
    if number is None:
        return None
    if number == 0:
        return "Complete"
    if number > 0:
        return "Incomplete"
    return None
