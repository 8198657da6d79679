"""Customs operations dashboard backend: arrivals reconciliation, flow runs, tracking notes"""

from __future__ import annotations

__version__ = "1.0.0"


# Lazy imports so lightweight modules load without FastAPI
def __getattr__(name: str):
    if name in ("ShipmentStatus", "classify_status"):
        from customsops.reconciliation import status

        return getattr(status, name)

    if name == "TrackingStore":
        from customsops.tracking.store import TrackingStore

        return TrackingStore

    if name == "dedupe_runs":
        from customsops.flows.runs import dedupe_runs

        return dedupe_runs

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)


__all__ = [
    "ShipmentStatus",
    "classify_status",
    "TrackingStore",
    "dedupe_runs",
]
