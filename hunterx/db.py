"""Document store bootstrap: one motor client per process and a collection handle.

The client is created at startup by `connect()` (called from the app lifespan) and
shared by every request. A failed startup ping is logged and otherwise ignored:
the process keeps serving and individual requests fail while the store is down.

Env (see `hunterx.settings`):
    MONGO_URI                           Connection string (mongodb:// or mongodb+srv://).
    MONGO_DB                            Database used when the URI names none.
    MONGO_COLLECTION                    Collection holding character documents.
    MONGO_SERVER_SELECTION_TIMEOUT_MS   How long the driver waits for a server.
"""

from __future__ import annotations

import logging
from urllib.parse import urlsplit

from fastapi import HTTPException
from motor.motor_asyncio import (
    AsyncIOMotorClient,
    AsyncIOMotorCollection,
)

from . import metrics
from .settings import settings

log = logging.getLogger(__name__)

STORE_UNAVAILABLE_MESSAGE = "Character store unavailable"

client: AsyncIOMotorClient | None = None


def _safe_url_parts(url_str: str) -> dict:
    """Split a Mongo URI into non-sensitive parts for logging (no credentials)."""
    try:
        u = urlsplit(url_str)
        return {
            "scheme": u.scheme or "",
            "host": u.hostname or "",
            "port": u.port or "",
            "database": u.path.lstrip("/") or settings.MONGO_DB,
        }
    except ValueError:
        return {"scheme": "unknown", "host": "", "port": "", "database": ""}


def _mk_client(url: str) -> AsyncIOMotorClient:
    """Build the motor client; the driver connects lazily on first use."""
    c = AsyncIOMotorClient(
        url, serverSelectionTimeoutMS=settings.MONGO_SERVER_SELECTION_TIMEOUT_MS
    )
    parts = _safe_url_parts(url)
    log.debug(
        "db.client_created scheme=%s host=%s port=%s db=%s",
        parts["scheme"],
        parts["host"],
        parts["port"],
        parts["database"],
    )
    return c


async def ping_db() -> bool:
    """Return True if the server answers a `ping` command."""
    if client is None:
        return False
    try:
        await client.admin.command("ping")
        return True
    except Exception as e:
        log.debug("db.ping failed: %r", e)
        return False


async def connect(url: str | None = None) -> bool:
    """Create the global client and ping once; log failures but never raise."""
    global client
    url = url or settings.MONGO_URI
    parts = _safe_url_parts(url)
    try:
        client = _mk_client(url)
    except Exception as exc:
        # Malformed URIs are rejected eagerly by the driver
        log.error(
            "db.connect_failed scheme=%s host=%s error=%r",
            parts["scheme"],
            parts["host"],
            exc,
        )
        return False

    ok = await ping_db()
    if ok:
        log.info(
            "db.connect scheme=%s host=%s port=%s db=%s",
            parts["scheme"],
            parts["host"],
            parts["port"],
            parts["database"],
        )
    else:
        log.error(
            "db.connect_failed scheme=%s host=%s db=%s (serving anyway)",
            parts["scheme"],
            parts["host"],
            parts["database"],
        )
    return ok


def close() -> None:
    """Close the global client, if any."""
    global client
    if client is not None:
        client.close()
        log.info("db.close")
    client = None


def get_collection() -> AsyncIOMotorCollection:
    """FastAPI dependency that returns the characters collection handle.

    Builds the client on first use when startup could not. A URI the driver
    rejects (bad port, unresolvable SRV record) surfaces as a 503 per request.

    Raises:
        HTTPException: 503 when the client cannot be created.
    """
    global client
    if client is None:
        try:
            client = _mk_client(settings.MONGO_URI)
        except Exception as exc:
            parts = _safe_url_parts(settings.MONGO_URI)
            log.error(
                "db.client_failed scheme=%s host=%s error=%r",
                parts["scheme"],
                parts["host"],
                exc,
            )
            metrics.record_store_error("connect", "unavailable")
            raise HTTPException(
                status_code=503, detail=STORE_UNAVAILABLE_MESSAGE
            ) from exc
    database = client.get_default_database(settings.MONGO_DB)
    return database[settings.MONGO_COLLECTION]
