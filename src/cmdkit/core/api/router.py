"""Base class for class-based FastAPI routers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import Any, Self

from fastapi import APIRouter


class Router(ABC):
    """Wraps an APIRouter; subclasses register their endpoints in _register_routes."""

    default_response_model_exclude_none: bool = False

    def __init__(self, prefix: str, tags: Sequence[str], **kwargs: Any) -> None:
        """Create the underlying APIRouter and register routes on it."""
        self.router = APIRouter(prefix=prefix, tags=list(tags), **kwargs)
        self._register_routes()

    @classmethod
    def create(cls, prefix: str, tags: Sequence[str], **kwargs: Any) -> APIRouter:
        """Build the router and return the APIRouter ready for app.include_router."""
        instance: Self = cls(prefix=prefix, tags=tags, **kwargs)
        return instance.router

    @abstractmethod
    def _register_routes(self) -> None:
        """Register endpoints on self.router."""
        ...
