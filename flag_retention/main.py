# flag_retention/main.py

from fastapi import FastAPI

from flag_retention.config import get_settings
from flag_retention.logging_config import configure_logging
from flag_retention.routers import admin_retention_router, user_flags_router

settings = get_settings()
configure_logging(json_format=settings.LOG_JSON, level=settings.LOG_LEVEL)

app = FastAPI(title="Flag Retention Service")

app.include_router(admin_retention_router)
app.include_router(user_flags_router)


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------

@app.get("/health")
def health() -> dict:
    return {"status": "ok", "service": "flag-retention", "environment": settings.ENVIRONMENT}
