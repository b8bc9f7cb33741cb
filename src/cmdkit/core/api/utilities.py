"""Helpers for URL building and running apps with uvicorn."""

from __future__ import annotations

import os
from typing import Any

from fastapi import FastAPI, Request


def build_location_url(request: Request, path: str) -> str:
    """Build an absolute URL for a resource below the request's path."""
    base = str(request.url).split("?", 1)[0].rstrip("/")
    return f"{base}{path}"


def run_app(
    app: FastAPI | str,
    *,
    host: str | None = None,
    port: int | None = None,
    workers: int | None = None,
    reload: bool = False,
    log_level: str | None = None,
    **uvicorn_kwargs: Any,
) -> None:
    """Run an app with uvicorn, falling back to HOST, PORT and LOG_LEVEL env vars.

    Pass an import string such as ``"module:app"`` to use reload or workers.
    """
    import uvicorn

    resolved_host = host or os.getenv("HOST", "127.0.0.1")
    resolved_port = port or int(os.getenv("PORT", "8000"))
    resolved_log_level = (log_level or os.getenv("LOG_LEVEL", "info")).lower()

    if isinstance(app, FastAPI) and (reload or (workers or 1) > 1):
        raise ValueError("reload and workers require an import string, e.g. run_app('main:app')")

    uvicorn.run(
        app,
        host=resolved_host,
        port=resolved_port,
        workers=workers,
        reload=reload,
        log_level=resolved_log_level,
        log_config=None,
        **uvicorn_kwargs,
    )
