"""
Application-wide settings and environment configuration
"""

from __future__ import annotations

import os
from pathlib import Path

# Project paths
PROJECT_ROOT = Path(__file__).parent.parent.parent

# Environment
ENV = os.getenv("CUSTOMSOPS_ENV", "development")

# API Configuration (PORT kept from the node deployment)
API_HOST = os.getenv("HOST", "0.0.0.0")
API_PORT = int(os.getenv("PORT", "3000"))

# Notes store
TRACKING_FILE = Path(os.getenv("CUSTOMSOPS_TRACKING_FILE", str(PROJECT_ROOT / "tracking-data.json")))

# Azure Function App (logs, container weight checks)
FUNCTION_APP_URL = os.getenv(
    "CUSTOMSOPS_FUNCTION_APP_URL",
    "https://functionapp-python-api-atfnhbf0b7c2b0ds.westeurope-01.azurewebsites.net",
).rstrip("/")
FUNCTION_APP_KEY = os.getenv("VITE_API_MAIN_KEY", "")

# Performance statistics API
PERFORMANCE_API_URL = os.getenv("VITE_API_BASE_URL", FUNCTION_APP_URL).rstrip("/")
PERFORMANCE_API_CODE = os.getenv("VITE_API_CODE", "")

# Azure Logic App triggers (empty = not configured)
MASTER_RECORDS_URL = os.getenv("CUSTOMSOPS_MASTER_RECORDS_URL", "")
REQUEST_FLOW_URL = os.getenv("CUSTOMSOPS_REQUEST_FLOW_URL", "")

# Upstream behaviour
UPSTREAM_TIMEOUT = float(os.getenv("CUSTOMSOPS_UPSTREAM_TIMEOUT", "30"))
UPSTREAM_CACHE_TTL = int(os.getenv("CUSTOMSOPS_CACHE_TTL", "300"))
UPSTREAM_MAX_ATTEMPTS = max(1, int(os.getenv("CUSTOMSOPS_UPSTREAM_MAX_ATTEMPTS", "2")))

# Role map: "email:role1|role2,email2:role3"
ROLE_MAP_RAW = os.getenv("CUSTOMSOPS_ROLE_MAP", "")

# Rate limiting, requests per client IP
RATE_LIMIT_RPM = int(os.getenv("CUSTOMSOPS_RATE_LIMIT_RPM", "120"))
RATE_LIMIT_RPH = int(os.getenv("CUSTOMSOPS_RATE_LIMIT_RPH", "3000"))

# Extra CORS origins, comma separated
ALLOWED_ORIGINS_RAW = os.getenv("CUSTOMSOPS_ALLOWED_ORIGINS", "")


def is_development() -> bool:
    """Check if running in development"""
    return ENV == "development"
