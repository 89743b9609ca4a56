"""FastAPI app, lifespan bootstrap, and HTTP routes.

Defines the application instance, startup sequence (one store connection attempt),
and the public REST endpoints:

- GET    /characters         -> every character document
- GET    /characters/{name}  -> first case-insensitive name match
- POST   /characters         -> insert a new document (body stored as-is)
- PUT    /characters/{name}  -> merge the body into the first match
- DELETE /characters/{name}  -> remove the first match
- GET    /api-docs           -> Swagger UI
- GET    /healthz, /healthcheck, /metrics
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, Awaitable, List

import uvicorn
from fastapi import FastAPI, HTTPException, Depends, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import RedirectResponse, JSONResponse
from motor.motor_asyncio import AsyncIOMotorCollection
from pymongo.errors import ConnectionFailure

from . import crud, db, metrics
from .db import get_collection, STORE_UNAVAILABLE_MESSAGE
from .schemas import (
    CharacterMutation,
    CharacterOut,
    CharacterRecord,
    HealthcheckOut,
    ProblemDetail,
)
from .settings import settings
from .logging_config import configure_logging

configure_logging()
log = logging.getLogger(__name__)

PORT = 3000

NOT_FOUND_MESSAGE = "Character not found"

# Fixed, non-diagnostic messages returned on unexpected store errors
_ERROR_MESSAGES = {
    "list": "Error fetching characters",
    "get": "Error looking up character",
    "create": "Error creating character",
    "update": "Error updating character",
    "delete": "Error deleting character",
}

# ---------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Connect to the store once; a failed connection is logged, not fatal."""
    await db.connect()
    try:
        yield
    finally:
        db.close()


# ---------------------------------------------------------------------
# App
# ---------------------------------------------------------------------

app = FastAPI(
    title="HunterxAPI",
    version="1.0.0",
    description="REST API for managing Hunter x Hunter characters in a document database.",
    docs_url="/api-docs",
    redoc_url=None,
    openapi_tags=[{"name": "Characters", "description": "Character documents"}],
    servers=(
        [{"url": settings.API_SERVER_URL, "description": "Deployed server"}]
        if settings.API_SERVER_URL
        else None
    ),
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ALLOW_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)
metrics.install(app)


_STATUS_TITLES = {
    400: "Bad Request",
    404: "Not Found",
    409: "Conflict",
    422: "Unprocessable Entity",
    500: "Internal Server Error",
    503: "Service Unavailable",
}


def _problem(
    status: int,
    title: str | None = None,
    detail: str | None = None,
    instance: str | None = None,
) -> JSONResponse:
    """Return an RFC7807 problem+json response; `message` mirrors `detail`."""
    body = {
        "type": "about:blank",
        "title": title or _STATUS_TITLES.get(status, "Error"),
        "status": status,
        "detail": detail,
        "instance": instance,
        "message": detail,
    }
    return JSONResponse(
        status_code=status, content=body, media_type="application/problem+json"
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(req: Request, exc: HTTPException):
    detail = exc.detail if isinstance(exc.detail, str) else None
    return _problem(
        status=exc.status_code,
        title=_STATUS_TITLES.get(exc.status_code),
        detail=detail,
        instance=req.url.path,
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(req: Request, exc: RequestValidationError):
    msg = exc.errors()[0]["msg"] if exc.errors() else "Validation error"
    return _problem(
        status=422, title=_STATUS_TITLES[422], detail=msg, instance=req.url.path
    )


async def _store(op: str, call: Awaitable[Any]) -> Any:
    """Await one store call, translating failures into HTTP errors.

    Connectivity problems become 503, a name collision 409, anything else 500.
    The cause is logged and counted; it never reaches the response body.
    """
    try:
        return await call
    except crud.DuplicateCharacter as exc:
        log.info("route.%s conflict name=%r", op, exc.name)
        metrics.record_store_error(op, "conflict")
        raise HTTPException(
            status_code=409, detail=f"Character '{exc.name}' already exists"
        ) from exc
    except (ConnectionFailure, asyncio.TimeoutError) as exc:
        log.error("route.%s store_unavailable error=%r", op, exc)
        metrics.record_store_error(op, "unavailable")
        raise HTTPException(
            status_code=503, detail=STORE_UNAVAILABLE_MESSAGE
        ) from exc
    except Exception as exc:
        log.exception("route.%s store_error error=%r", op, exc)
        metrics.record_store_error(op, "internal")
        raise HTTPException(status_code=500, detail=_ERROR_MESSAGES[op]) from exc


_problem_resp = {
    "application/problem+json": {"schema": ProblemDetail.model_json_schema()},
}
_errors = {
    500: {"content": _problem_resp, "model": ProblemDetail},
    503: {"content": _problem_resp, "model": ProblemDetail},
}
_not_found = {404: {"content": _problem_resp, "model": ProblemDetail}}
_invalid = {422: {"content": _problem_resp, "model": ProblemDetail}}

# ---------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------


@app.get("/", include_in_schema=False)
async def root(_request: Request):
    """Redirect the root path to the interactive API docs."""
    return RedirectResponse(url=app.docs_url or "/api-docs", status_code=307)


@app.get("/healthz", include_in_schema=False)
async def healthz():
    """Liveness: always 200 if the process can serve requests."""
    return {"status": "ok"}


@app.get("/healthcheck", response_model=HealthcheckOut, include_in_schema=False)
async def healthcheck(coll: AsyncIOMotorCollection = Depends(get_collection)):
    """Deep health check: can we count documents in the store?"""
    db_ok = True
    total = 0
    try:
        total = await crud.count_characters(coll)
    except Exception as exc:
        db_ok = False
        log.debug("route.healthcheck.db_error error=%r", exc)

    metrics.observe_health(db_ok, total)
    log.info(
        "route.healthcheck db_ok=%s character_count=%d",
        db_ok,
        total,
    )
    return {
        "status": "ok" if db_ok else "degraded",
        "db_ok": db_ok,
        "character_count": total,
    }


@app.get(
    "/characters",
    response_model=None,
    summary="List all characters",
    tags=["Characters"],
    responses={200: {"model": List[CharacterOut]}, **_errors},
)
async def list_characters(coll: AsyncIOMotorCollection = Depends(get_collection)):
    rows = await _store("list", crud.list_characters(coll))
    log.info("route.list_characters returned=%d", len(rows))
    return rows


@app.get(
    "/characters/{name}",
    response_model=None,
    summary="Look up a character by name (case-insensitive)",
    tags=["Characters"],
    responses={200: {"model": CharacterOut}, **_not_found, **_errors},
)
async def get_character(
    name: str, coll: AsyncIOMotorCollection = Depends(get_collection)
):
    doc = await _store("get", crud.get_character(coll, name))
    log.info("route.get_character name=%r found=%s", name, doc is not None)
    if doc is None:
        raise HTTPException(status_code=404, detail=NOT_FOUND_MESSAGE)
    return doc


@app.post(
    "/characters",
    response_model=None,
    status_code=status.HTTP_201_CREATED,
    summary="Create a character",
    tags=["Characters"],
    responses={
        201: {"model": CharacterMutation},
        409: {"content": _problem_resp, "model": ProblemDetail},
        **_invalid,
        **_errors,
    },
)
async def create_character(
    body: CharacterRecord, coll: AsyncIOMotorCollection = Depends(get_collection)
):
    """Store the body as a new document. Duplicate names are allowed unless
    UNIQUE_NAMES is enabled."""
    doc = await _store(
        "create",
        crud.create_character(
            coll, body.to_document(), unique_names=settings.UNIQUE_NAMES
        ),
    )
    log.info("route.create_character name=%r id=%s", doc.get("name"), doc["_id"])
    return {"message": "Character created", "data": doc}


@app.put(
    "/characters/{name}",
    response_model=None,
    summary="Update a character by name",
    tags=["Characters"],
    responses={
        200: {"model": CharacterMutation},
        **_not_found,
        **_invalid,
        **_errors,
    },
)
async def update_character(
    name: str,
    body: CharacterRecord,
    coll: AsyncIOMotorCollection = Depends(get_collection),
):
    """Merge the supplied fields into the first matching character."""
    patch = body.to_document()
    doc = await _store("update", crud.update_character(coll, name, patch))
    log.info(
        "route.update_character name=%r fields=%s found=%s",
        name,
        sorted(patch),
        doc is not None,
    )
    if doc is None:
        raise HTTPException(status_code=404, detail=NOT_FOUND_MESSAGE)
    return {"message": "Character updated", "data": doc}


@app.delete(
    "/characters/{name}",
    response_model=None,
    summary="Delete a character by name",
    tags=["Characters"],
    responses={200: {"model": CharacterMutation}, **_not_found, **_errors},
)
async def delete_character(
    name: str, coll: AsyncIOMotorCollection = Depends(get_collection)
):
    doc = await _store("delete", crud.delete_character(coll, name))
    log.info("route.delete_character name=%r found=%s", name, doc is not None)
    if doc is None:
        raise HTTPException(status_code=404, detail=NOT_FOUND_MESSAGE)
    return {"message": "Character deleted", "data": doc}


def run() -> None:
    """Serve the app on the fixed port until terminated."""
    uvicorn.run(app, host="0.0.0.0", port=PORT, log_config=None)


if __name__ == "__main__":
    run()
