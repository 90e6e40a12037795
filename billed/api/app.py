from __future__ import annotations

from pathlib import Path
from time import perf_counter
from uuid import uuid4

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from billed.api.dependencies import build_context
from billed.api.error_handlers import register_error_handlers
from billed.api.routers.bills import router as bills_router
from billed.api.routers.health import router as health_router
from billed.logger import get_logger, request_scope, setup_logging
from billed.settings import Settings, load_settings

API_PREFIX = "/api"


def _bill_id_from_path(path: str) -> str:
    # /api/bills/{bill_id}
    parts = [seg for seg in path.split("/") if seg]
    if len(parts) >= 3 and parts[:2] == ["api", "bills"]:
        return parts[2]
    return "-"


def _install_request_logging(app: FastAPI) -> None:
    logger = get_logger()

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        incoming = str(request.headers.get("x-request-id", "") or "").strip()
        with request_scope(incoming or uuid4().hex[:16]) as request_id:
            started = perf_counter()
            req_logger = logger.bind(bill_id=_bill_id_from_path(request.url.path))
            line = f"{request.method} {request.url.path}"
            try:
                response = await call_next(request)
            except Exception:
                elapsed = (perf_counter() - started) * 1000
                req_logger.opt(exception=True).error(f"{line} failed duration_ms={elapsed:.2f}")
                raise

            elapsed = (perf_counter() - started) * 1000
            response.headers["X-Request-Id"] = request_id
            status = int(response.status_code)
            message = f"{line} status={status} duration_ms={elapsed:.2f}"
            if status >= 500:
                req_logger.error(message)
            elif status >= 400:
                req_logger.warning(message)
            else:
                req_logger.info(message)
            return response


def create_app(root: Path, settings: Settings | None = None) -> FastAPI:
    settings = settings or load_settings()
    setup_logging(settings)

    app = FastAPI(title="Billed API", version="1.0.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    ctx = build_context(root, settings)
    app.state.ctx = ctx

    _install_request_logging(app)
    register_error_handlers(app)

    app.include_router(health_router, prefix=API_PREFIX)
    app.include_router(bills_router, prefix=API_PREFIX)

    # receipts written by LocalBlobStore
    app.mount("/public", StaticFiles(directory=ctx.upload_dir), name="public")
    return app


def serve(root: Path, host: str | None = None, port: int | None = None) -> None:
    settings = load_settings()
    setup_logging(settings)
    app = create_app(root, settings)
    host = host or settings.host
    port = port or settings.port
    get_logger().info(f"bills API listening on http://{host}:{port}")
    uvicorn.run(
        app,
        host=host,
        port=port,
        log_level=settings.log_level.lower(),
        log_config=None,
    )
