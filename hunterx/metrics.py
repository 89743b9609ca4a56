import time
from fastapi import FastAPI, Request, Response
from prometheus_client import (
    Counter,
    Gauge,
    Histogram,
    generate_latest,
    CONTENT_TYPE_LATEST,
)

# --- Metric objects ---
REQUESTS = Counter(
    "http_requests_total",
    "Total HTTP requests",
    labelnames=["path", "method", "status"],
)
REQUEST_LATENCY = Histogram(
    "http_request_latency_seconds",
    "Request latency seconds",
    labelnames=["path", "method"],
)
STORE_ERRORS = Counter(
    "store_errors_total",
    "Failed document-store calls",
    labelnames=["op", "kind"],
)

DB_OK_G = Gauge("db_ok", "Document store availability (1 ok, 0 down)")
CHARACTERS_G = Gauge("characters_total", "Character documents at last healthcheck")


def record_store_error(op: str, kind: str) -> None:
    STORE_ERRORS.labels(op=op, kind=kind).inc()


def observe_health(db_ok: bool, count: int) -> None:
    DB_OK_G.set(1 if db_ok else 0)
    if db_ok:
        CHARACTERS_G.set(count)


def _route_path(request: Request) -> str:
    # Label by route template so /characters/{name} doesn't explode cardinality
    route = request.scope.get("route")
    return getattr(route, "path", None) or request.url.path


def install(app: FastAPI) -> None:
    @app.middleware("http")
    async def _metrics_mw(request: Request, call_next):
        t0 = time.perf_counter()
        status = 500
        try:
            response = await call_next(request)
            status = response.status_code
            return response
        finally:
            dur = time.perf_counter() - t0
            path = _route_path(request)
            REQUEST_LATENCY.labels(path=path, method=request.method).observe(dur)
            REQUESTS.labels(
                path=path, method=request.method, status=str(status)
            ).inc()

    @app.get("/metrics", include_in_schema=False)
    async def metrics():
        return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
