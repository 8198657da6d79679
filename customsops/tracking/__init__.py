"""Operator tracking notes persisted to a JSON file"""

from __future__ import annotations

from customsops.tracking.store import TrackingStore, TrackingStoreError, get_tracking_store

__all__ = ["TrackingStore", "TrackingStoreError", "get_tracking_store"]
