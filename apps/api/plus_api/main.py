from __future__ import annotations

import uuid
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from plus_api.core.config import get_app_version, get_auto_create_schema
from plus_api.core.db import create_schema, db_health
from plus_api.core.errors import ApiError, err_envelope
from plus_api.core.logs import emit, request_id_var
from plus_api.core.storage import storage_health
from plus_api.modules.cosmetics.router import router as cosmetics_router
from plus_api.modules.payments.router import router as payments_router
from plus_api.modules.payments.tebex.plugin_api import close_plugin_client
from plus_api.modules.websocket.router import router as websocket_router

_last_error_summary: Optional[Dict[str, Any]] = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    if get_auto_create_schema():
        create_schema()
        emit("info", "app.schema.created", "schema created from table metadata", __name__)
    emit("info", "app.startup", f"plus-backend {get_app_version()} started", __name__)
    yield
    close_plugin_client()


app = FastAPI(title="Plus Backend API", version=get_app_version(), lifespan=lifespan)


# Contract locks:
# - X-Request-Id in/out (missing -> generated; always echoed back; also on errors)
# - Error envelope keys: error, message, request_id, details
# - /health keys: status, version, db, storage, last_error_summary
@app.middleware("http")
async def _request_id_mw(request: Request, call_next):
    rid = request.headers.get("X-Request-Id") or uuid.uuid4().hex.upper()
    request.state.request_id = rid
    token = request_id_var.set(rid)
    emit("info", "http.request.start", f"{request.method} {request.url.path}", __name__)
    try:
        resp = await call_next(request)
    except Exception as e:
        emit("error", "http.request.exception", str(e), __name__)
        raise
    finally:
        request_id_var.reset(token)
    resp.headers["X-Request-Id"] = rid
    emit("info", "http.request.end", f"{request.method} {request.url.path} -> {resp.status_code}", __name__, request_id=rid)
    return resp


@app.exception_handler(ApiError)
async def _api_error_handler(request: Request, exc: ApiError):
    rid = getattr(request.state, "request_id", None)
    return err_envelope(exc.error, exc.message, rid, exc.details, exc.status_code)


@app.exception_handler(StarletteHTTPException)
async def _http_exc_handler(request: Request, exc: StarletteHTTPException):
    rid = getattr(request.state, "request_id", None)
    return err_envelope("http_error", str(exc.detail), rid, {"status_code": exc.status_code}, exc.status_code)


@app.exception_handler(RequestValidationError)
async def _validation_exc_handler(request: Request, exc: RequestValidationError):
    rid = getattr(request.state, "request_id", None)
    return err_envelope("validation_error", "request validation failed", rid, exc.errors(), 422)


@app.exception_handler(Exception)
async def _unhandled_exc_handler(request: Request, exc: Exception):
    global _last_error_summary
    rid = getattr(request.state, "request_id", None)
    _last_error_summary = {"type": type(exc).__name__, "request_id": rid, "path": request.url.path}
    emit("error", "http.request.unhandled", f"{type(exc).__name__}: {exc}", __name__, request_id=rid)
    return err_envelope("internal_error", "internal server error", rid, {"type": type(exc).__name__}, 500)


@app.get("/health")
def health():
    db = db_health()
    storage = storage_health()
    ok = db.get("status") == "ok" and storage.get("status") == "ok"
    return {
        "status": "ok" if ok else "degraded",
        "version": get_app_version(),
        "db": db,
        "storage": storage,
        "last_error_summary": _last_error_summary,
    }


app.include_router(payments_router)
app.include_router(cosmetics_router)
app.include_router(websocket_router)
