from __future__ import annotations

import os

from fastapi import FastAPI

from refract.api.errors import ApiError, api_error_handler
from refract.api.routes_public import public_router
from refract.api.structured_logging import RequestLogMiddleware
from refract.runtime.executor_boot import build_executor as _build_executor


def build_executor():
    """Build a LedgerExecutor for API runtime.

    This wrapper exists so tests can monkeypatch `refract.api.app.build_executor`
    without reaching into runtime modules.
    """
    return _build_executor()


def create_app(*, boot_runtime: bool = True) -> FastAPI:
    """Create the FastAPI application.

    boot_runtime:
      - True (default): load chain config and attach the executor
      - False: no executor; routes that need it answer 503 not_ready
    """
    mode = os.environ.get("REFRACT_MODE", "prod").strip().lower()

    # Disable docs in production.
    if mode == "prod":
        app = FastAPI(title="Refract Ledger API", docs_url=None, redoc_url=None, openapi_url=None)
    else:
        app = FastAPI(title="Refract Ledger API")

    app.state.executor = build_executor() if boot_runtime else None

    app.add_exception_handler(ApiError, api_error_handler)
    app.add_middleware(RequestLogMiddleware)

    app.include_router(public_router)
    return app
