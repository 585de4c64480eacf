import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.trustedhost import TrustedHostMiddleware

from servicematch.routers import auth, bookings, matching, notifications
from servicematch.services.matching_engine import matching_engine
from servicematch.services.push_sender import push_sender

logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO").upper())
logger = logging.getLogger(__name__)


def _csv_env(name: str, default: str = "*") -> list[str]:
    return [item.strip() for item in os.getenv(name, default).split(",") if item.strip()]


def _is_wildcard(values: list[str]) -> bool:
    return values == ["*"]


@asynccontextmanager
async def lifespan(_: FastAPI):
    approved = matching_engine.store.list_providers(status="approved")
    logger.info(
        "ServiceMatch ready: db=%s approved_providers=%s push_enabled=%s",
        matching_engine.store.db_path,
        len(approved),
        push_sender.enabled,
    )
    yield


app = FastAPI(title="ServiceMatch API", version="0.1.0", lifespan=lifespan)

cors_origins = _csv_env("CORS_ORIGINS")
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    # Browsers reject wildcard CORS with credentials enabled.
    allow_credentials=not _is_wildcard(cors_origins),
    allow_methods=["*"],
    allow_headers=["*"],
)

trusted_hosts = _csv_env("TRUSTED_HOSTS")
if not _is_wildcard(trusted_hosts):
    app.add_middleware(TrustedHostMiddleware, allowed_hosts=trusted_hosts)

for module in (matching, bookings, auth, notifications):
    app.include_router(module.router)


@app.get("/health")
def health():
    return {"status": "ok"}


@app.get("/ready")
def ready():
    providers = matching_engine.store.list_providers()
    by_status: dict[str, int] = {}
    for provider in providers:
        by_status[provider.status] = by_status.get(provider.status, 0) + 1
    return {
        "status": "ready",
        "approved_providers": by_status.get("approved", 0),
        "providers_by_status": by_status,
        "push_enabled": push_sender.enabled,
    }
