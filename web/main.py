import os

from fastapi import FastAPI, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from core.env_utils import load_dotenv_if_available
from core.logging import get_logger
from services.billing.session_context import BillingSessionContext
from web import routers

try:  # pragma: no cover - optional dependency
    from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
except ImportError:  # pragma: no cover - optional dependency
    CONTENT_TYPE_LATEST = "text/plain"
    generate_latest = None

load_dotenv_if_available()
logger = get_logger(__name__)

app = FastAPI(
    title="Court Billing API",
    description="Billing cycles, commissions and trial lifecycle for venue owners.",
    version="0.1.0",
)

origins = [origin.strip() for origin in os.getenv("CORS_ALLOW_ORIGINS", "http://localhost:3000").split(",") if origin.strip()]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.state.billing_context = BillingSessionContext()


@app.get("/", summary="Health Check", tags=["Default"])
def health_check():
    return {"status": "ok", "message": "Court Billing API is running."}


@app.get("/healthz", include_in_schema=False)
def readiness_probe():
    """Probe that also checks database connectivity."""
    db_ok, db_error = routers.health.ping_database()
    payload = {"status": "ok" if db_ok else "unhealthy", "database": {"ok": db_ok}}
    if db_error:
        payload["database"]["error"] = db_error
    status_code = status.HTTP_200_OK if db_ok else status.HTTP_503_SERVICE_UNAVAILABLE
    return JSONResponse(status_code=status_code, content=payload)


@app.get("/metrics", include_in_schema=False)
def prometheus_metrics():
    if generate_latest is None:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"code": "metrics.unavailable", "message": "prometheus_client is not installed"},
        )
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)


app.include_router(routers.billing.router, prefix="/api/v1")
app.include_router(routers.admin_billing.router, prefix="/api/v1")
app.include_router(routers.health.router, prefix="/api/v1")
