"""FastAPI server for the customs operations dashboard"""

from __future__ import annotations

from typing import Any

from dotenv import load_dotenv
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# Load environment variables from .env file before settings are read
load_dotenv()

from customsops.api.middleware.rate_limit import RateLimitMiddleware  # noqa: E402
from customsops.api.routes.arrivals import router as arrivals_router  # noqa: E402
from customsops.api.routes.containers import router as containers_router  # noqa: E402
from customsops.api.routes.flows import router as flows_router  # noqa: E402
from customsops.api.routes.health import router as health_router  # noqa: E402
from customsops.api.routes.performance import router as performance_router  # noqa: E402
from customsops.api.routes.requests import router as requests_router  # noqa: E402
from customsops.api.routes.tracking import router as tracking_router  # noqa: E402
from customsops.config import (  # noqa: E402
    ALLOWED_ORIGINS_RAW,
    API_HOST,
    API_PORT,
    APP_VERSION,
    RATE_LIMIT_RPH,
    RATE_LIMIT_RPM,
    TRACKING_FILE,
    is_development,
)
from customsops.observability.logging import get_logger  # noqa: E402
from customsops.observability.telemetry import counter  # noqa: E402

logger = get_logger(__name__)

app = FastAPI(title="CustomsOps API", version=APP_VERSION)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """
    Validation errors expose field names only, never the rules that failed.

    The full error list is logged for debugging.
    """
    logger.warning("Validation error on %s %s: %s", request.method, request.url.path, exc.errors())
    counter("api.validation_errors")

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "detail": "Invalid request format. Please check your request and try again.",
            "error_count": len(exc.errors()),
            "invalid_fields": [str(err["loc"][-1]) for err in exc.errors()],
        },
    )


# CORS: the dashboard is served from the same App Service; extra origins come
# from CUSTOMSOPS_ALLOWED_ORIGINS (comma separated)
ALLOWED_ORIGINS = [o.strip() for o in ALLOWED_ORIGINS_RAW.split(",") if o.strip()]

if is_development():
    ALLOWED_ORIGINS.extend(
        [
            "http://localhost:3000",
            "http://localhost:5173",
            "http://127.0.0.1:3000",
            "http://127.0.0.1:5173",
        ]
    )

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-Request-ID"],
)

app.add_middleware(
    RateLimitMiddleware,
    requests_per_minute=RATE_LIMIT_RPM,
    requests_per_hour=RATE_LIMIT_RPH,
)

app.include_router(health_router)
app.include_router(tracking_router)
app.include_router(arrivals_router)
app.include_router(flows_router)
app.include_router(containers_router)
app.include_router(performance_router)
app.include_router(requests_router)

logger.info("CustomsOps API ready (tracking file: %s)", TRACKING_FILE)


# ============================================================================
# CORE ENDPOINTS
# ============================================================================


@app.get("/")
def root() -> dict[str, Any]:
    return {
        "service": "CustomsOps API",
        "version": APP_VERSION,
        "status": "running",
        "endpoints": {
            "tracking": "/api/tracking",
            "arrivals": "/api/arrivals",
            "export": "/api/arrivals/export.csv",
            "flows": "/api/flows",
            "violations": "/api/containers/violations",
            "performance": "/api/performance/summary",
            "requests": "/api/requests",
            "me": "/api/me",
        },
    }


def main() -> None:
    """Console entry point: serve the API with uvicorn."""
    import uvicorn

    uvicorn.run(app, host=API_HOST, port=API_PORT, log_level="info")


if __name__ == "__main__":
    main()
