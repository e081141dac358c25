from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import httpx

from skillsync.config import Config
from skillsync.core.core import Core
from skillsync.core.modules.comment.models import CommentAuthor, ResourceRef, ResourceType
from skillsync.core.modules.comment.service import CommentStore
from skillsync.core.modules.comment.thread import CommentThread
from skillsync.logging import setup_logging


class App:
    """Facade over Core: owns the client lifecycle and hands out comment threads."""

    def __init__(self, config: Config, transport: httpx.AsyncBaseTransport | None = None) -> None:
        setup_logging(config.debug)
        self._core = Core(config, transport)

    @asynccontextmanager
    async def lifespan(self) -> AsyncGenerator[None]:
        """Application lifespan management - delegates to Core."""
        async with self._core.lifespan():
            yield

    @property
    def comments(self) -> CommentStore:
        """The store holding every fetched comment tree."""
        return self._core.services.comment

    def open_thread(
        self,
        resource_type: ResourceType | str,
        resource_id: str | int,
        viewer: CommentAuthor | None,
        max_depth: int | None = None,
    ) -> CommentThread:
        """Create the interaction controller for the comments of a project or task.

        Args:
            resource_type: "project" or "task"
            resource_id: Id of the project or task
            viewer: Signed-in user, None for anonymous viewers
            max_depth: Deepest reply level to display (defaults to config.max_depth)
        """
        ref = ResourceRef(resource_type=ResourceType(resource_type), resource_id=str(resource_id))
        depth = self._core.config.max_depth if max_depth is None else max_depth
        return CommentThread(self.comments, ref, viewer, depth)
