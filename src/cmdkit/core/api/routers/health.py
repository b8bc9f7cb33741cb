"""Health check router."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from enum import StrEnum

from pydantic import BaseModel, Field

from cmdkit.core.logging import get_logger

from ..router import Router

logger = get_logger(__name__)


class HealthState(StrEnum):
    """Health state enumeration for health checks."""

    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


HealthCheck = Callable[[], Awaitable[tuple[HealthState, str | None]]]

_SEVERITY = {HealthState.HEALTHY: 0, HealthState.DEGRADED: 1, HealthState.UNHEALTHY: 2}


class CheckResult(BaseModel):
    """Result of an individual health check."""

    state: HealthState = Field(description="Health state of this check")
    message: str | None = Field(default=None, description="Optional message or error detail")


class HealthStatus(BaseModel):
    """Overall health status response."""

    status: HealthState = Field(description="Worst state across all checks")
    checks: dict[str, CheckResult] | None = Field(default=None, description="Individual check results, if configured")


async def run_checks(checks: dict[str, HealthCheck]) -> HealthStatus:
    """Run every check and fold the results into an overall status."""
    if not checks:
        return HealthStatus(status=HealthState.HEALTHY)

    results: dict[str, CheckResult] = {}
    for name, check_fn in checks.items():
        try:
            state, message = await check_fn()
        except Exception as e:
            logger.warning("health.check_failed", check=name, error=str(e))
            state, message = HealthState.UNHEALTHY, f"Check failed: {e}"
        results[name] = CheckResult(state=state, message=message)

    overall = max((result.state for result in results.values()), key=_SEVERITY.__getitem__)
    return HealthStatus(status=overall, checks=results)


class HealthRouter(Router):
    """Health check router for service health monitoring."""

    default_response_model_exclude_none = True

    def __init__(
        self,
        prefix: str,
        tags: list[str],
        checks: dict[str, HealthCheck] | None = None,
        **kwargs: object,
    ) -> None:
        """Initialize health router with optional named checks."""
        self.checks = checks or {}
        super().__init__(prefix=prefix, tags=tags, **kwargs)

    def _register_routes(self) -> None:
        checks = self.checks

        @self.router.get(
            "",
            summary="Health check",
            response_model=HealthStatus,
            response_model_exclude_none=self.default_response_model_exclude_none,
        )
        async def health_check() -> HealthStatus:
            return await run_checks(checks)
