from __future__ import annotations

import importlib
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, cast

import httpx

from skillsync.config import Config

if TYPE_CHECKING:
    from skillsync.core.modules.comment.service import CommentStore


class Service:
    """Base class for services talking to the SkillSync API."""

    def __init__(self, http: httpx.AsyncClient) -> None:
        self.http = http

    async def on_stop(self) -> None:
        """Cleanup service on client shutdown."""


class Services:
    """Service registry that automatically discovers and initializes services."""

    comment: CommentStore

    def __init__(self, http: httpx.AsyncClient) -> None:
        """Initialize all services automatically using service configuration."""
        self._services: list[Service] = []

        # Service configuration: (attribute_name, module_path, class_name)
        service_configs = [
            ("comment", "skillsync.core.modules.comment.service", "CommentStore"),
        ]

        # Dynamically import and instantiate services
        for attr_name, module_path, class_name in service_configs:
            module = importlib.import_module(module_path)
            service_class = cast(type[Service], getattr(module, class_name))
            service_instance = service_class(http)
            setattr(self, attr_name, service_instance)
            self._services.append(service_instance)

    async def stop_all(self) -> None:
        for service in self._services:
            await service.on_stop()


class Core:
    """Container providing config, the shared HTTP client, and all service instances."""

    config: Config
    http: httpx.AsyncClient
    services: Services

    def __init__(self, config: Config, transport: httpx.AsyncBaseTransport | None = None) -> None:
        """Initialize core with config, an API client, and auto-register services.

        ``transport`` replaces the network layer (e.g. ``httpx.MockTransport`` in tests).
        """
        self.config = config
        headers = {"Accept": "application/json"}
        if config.api_token:
            headers["Authorization"] = f"Bearer {config.api_token}"
        self.http = httpx.AsyncClient(
            base_url=config.api_url, headers=headers, timeout=config.request_timeout, transport=transport
        )
        self.services = Services(self.http)

    @asynccontextmanager
    async def lifespan(self) -> AsyncGenerator[None]:
        """Manage client lifecycle - shutdown on exit."""
        try:
            yield
        finally:
            await self.on_stop()

    async def on_stop(self) -> None:
        """Stop services and close the HTTP connection pool."""
        await self.services.stop_all()
        await self.http.aclose()
