"""Fluent builder assembling a FastAPI service around a Database."""

from __future__ import annotations

import re
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, Self

from fastapi import APIRouter, FastAPI
from pydantic import BaseModel, ConfigDict
from sqlalchemy import text

from cmdkit.core import Database
from cmdkit.core.logging import configure_logging, get_logger

from .dependencies import get_database, set_database
from .middleware import add_error_handlers, add_logging_middleware
from .routers import HealthRouter
from .routers.health import HealthCheck, HealthState

logger = get_logger(__name__)

LifecycleHook = Callable[[FastAPI], Awaitable[None]]

_CHECK_NAME_PATTERN = re.compile(r"[A-Za-z0-9_-]+")


class ServiceInfo(BaseModel):
    """Metadata published in the OpenAPI document and at /api/v1/info."""

    model_config = ConfigDict(extra="forbid")

    display_name: str
    version: str = "1.0.0"
    summary: str | None = None
    description: str | None = None
    contact: dict[str, str] | None = None
    license_info: dict[str, str] | None = None


@dataclass(slots=True)
class _HealthOptions:
    prefix: str
    tags: list[str]
    checks: dict[str, HealthCheck] = field(default_factory=dict)


async def check_database() -> tuple[HealthState, str | None]:
    """Health check running a trivial query against the active database."""
    try:
        async with get_database().session() as session:
            await session.execute(text("SELECT 1"))
    except Exception as e:
        return (HealthState.UNHEALTHY, f"Database connection failed: {e}")
    return (HealthState.HEALTHY, None)


class BaseServiceBuilder:
    """Builds an app with database lifecycle, health, info and logging; modules plug in via hooks.

    Subclasses add feature modules by overriding ``_validate_module_configuration``,
    ``_register_module_routers``, ``_module_health_checks`` and ``_on_module_startup``.
    """

    def __init__(
        self,
        *,
        info: ServiceInfo,
        database_url: str = "sqlite+aiosqlite:///:memory:",
        include_error_handlers: bool = True,
        include_logging: bool = False,
    ) -> None:
        if info.description is None and info.summary is not None:
            info = info.model_copy(update={"description": info.summary})
        self.info = info
        self._database_url = database_url
        self._database: Database | None = None
        self._error_handlers = include_error_handlers
        self._logging = include_logging
        self._health: _HealthOptions | None = None
        self._routers: list[APIRouter] = []
        self._overrides: dict[Callable[..., Any], Callable[..., Any]] = {}
        self._startup: list[LifecycleHook] = []
        self._shutdown: list[LifecycleHook] = []

    def with_database(self, url: str) -> Self:
        self._database_url = url
        return self

    def with_database_instance(self, database: Database) -> Self:
        """Use an existing Database; it is initialized on startup but never disposed."""
        self._database = database
        return self

    def with_logging(self, enabled: bool = True) -> Self:
        """Configure structlog on startup and log every request."""
        self._logging = enabled
        return self

    def with_health(
        self,
        *,
        prefix: str = "/api/v1/health",
        tags: list[str] | None = None,
        checks: dict[str, HealthCheck] | None = None,
        include_database_check: bool = True,
    ) -> Self:
        """Expose a health endpoint; module checks are added at build time."""
        options = _HealthOptions(prefix=prefix, tags=list(tags) if tags is not None else ["health"])
        options.checks.update(checks or {})
        if include_database_check:
            options.checks["database"] = check_database
        self._health = options
        return self

    def include_router(self, router: APIRouter) -> Self:
        self._routers.append(router)
        return self

    def override_dependency(self, dependency: Callable[..., Any], override: Callable[..., Any]) -> Self:
        self._overrides[dependency] = override
        return self

    def on_startup(self, hook: LifecycleHook) -> Self:
        """Run hook(app) once the database and modules are ready."""
        self._startup.append(hook)
        return self

    def on_shutdown(self, hook: LifecycleHook) -> Self:
        self._shutdown.append(hook)
        return self

    def build(self) -> FastAPI:
        """Validate the configuration and assemble the app."""
        self._check_health_names()
        self._validate_module_configuration()

        app = FastAPI(
            title=self.info.display_name,
            version=self.info.version,
            description=self.info.description or "",
            contact=self.info.contact,
            license_info=self.info.license_info,
            lifespan=self._lifespan,
        )

        if self._error_handlers:
            add_error_handlers(app)
        if self._logging:
            add_logging_middleware(app)

        # Module routers first: their health checks join the health router
        self._register_module_routers(app)
        if self._health is not None:
            checks = {**self._health.checks, **self._module_health_checks()}
            app.include_router(HealthRouter.create(prefix=self._health.prefix, tags=self._health.tags, checks=checks))

        for router in self._routers:
            app.include_router(router)
        app.dependency_overrides.update(self._overrides)

        info = self.info

        async def get_info() -> ServiceInfo:
            return info

        app.add_api_route(
            "/api/v1/info", get_info, methods=["GET"], response_model=ServiceInfo, include_in_schema=False
        )
        return app

    @classmethod
    def create(cls, *, info: ServiceInfo, **kwargs: Any) -> FastAPI:
        """Shorthand for ``cls(info=info, **kwargs).build()``."""
        return cls(info=info, **kwargs).build()

    # Module hooks

    def _validate_module_configuration(self) -> None:
        """Raise ValueError for inconsistent module options."""

    def _register_module_routers(self, app: FastAPI) -> None:
        """Include module routers on the app."""

    def _module_health_checks(self) -> dict[str, HealthCheck]:
        return {}

    async def _on_module_startup(self, app: FastAPI) -> None:
        """Create per-app module state once the database is ready."""

    # Internals

    def _check_health_names(self) -> None:
        if self._health is None:
            return
        for name in self._health.checks:
            if not _CHECK_NAME_PATTERN.fullmatch(name):
                raise ValueError(
                    f"Health check name '{name}' contains invalid characters. "
                    "Only alphanumeric characters, underscores, and hyphens are allowed."
                )

    @asynccontextmanager
    async def _lifespan(self, app: FastAPI) -> AsyncIterator[None]:
        if self._logging:
            configure_logging()

        owned = self._database is None
        database = self._database if self._database is not None else Database(self._database_url)

        await database.init()
        set_database(database)
        app.state.database = database
        logger.info("service.started", name=app.title, version=app.version, database_url=database.url)

        try:
            await self._on_module_startup(app)
            for hook in self._startup:
                await hook(app)
            yield
        finally:
            for hook in self._shutdown:
                await hook(app)
            app.state.database = None
            set_database(None)
            if owned:
                await database.dispose()
            logger.info("service.stopped", name=app.title)
