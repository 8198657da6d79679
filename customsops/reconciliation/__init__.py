"""Arrival/outbound reconciliation: status rule, arrival views, exports"""

from __future__ import annotations

from customsops.reconciliation.status import ShipmentStatus, classify_arrival, classify_status

__all__ = ["ShipmentStatus", "classify_arrival", "classify_status"]
