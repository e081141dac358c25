from collections import Counter
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import httpx
import structlog

from skillsync.core.core import Service
from skillsync.core.modules.attachment.models import PendingFile
from skillsync.core.modules.comment.client import CommentApiClient
from skillsync.core.modules.comment.models import Comment, ResourceRef
from skillsync.core.modules.comment.normalizer import normalize_comment, normalize_comments, normalize_like_state
from skillsync.core.modules.comment.tree import (
    count_comments,
    find_comment,
    insert_reply,
    remove_comment,
    replace_comment,
)
from skillsync.errors import FetchError, NotFoundError, ValidationError
from skillsync.utils import now

logger = structlog.get_logger(__name__)


class CommentStore(Service):
    """Caches comment trees per resource and applies server-confirmed mutations.

    Nothing is changed optimistically: a tree is patched only after the API call
    succeeds, so a failed call leaves the cached tree exactly as it was. Calls
    against the same resource are not serialized; each patch is applied to the
    tree current at the time the response arrives.
    """

    def __init__(self, http: httpx.AsyncClient) -> None:
        super().__init__(http)
        self._api = CommentApiClient(http)
        self._trees: dict[ResourceRef, list[Comment]] = {}
        self._in_flight: Counter[ResourceRef] = Counter()

    async def on_stop(self) -> None:
        self.clear()

    def get(self, ref: ResourceRef) -> list[Comment]:
        """Snapshot of the cached top-level comments (empty if never fetched)."""
        return self._trees.get(ref, [])

    def find(self, ref: ResourceRef, comment_id: str) -> Comment | None:
        return find_comment(self.get(ref), comment_id)

    def count(self, ref: ResourceRef) -> int:
        """Number of cached comments at every depth."""
        return count_comments(self.get(ref))

    def is_loading(self, ref: ResourceRef) -> bool:
        return self._in_flight[ref] > 0

    def clear(self, ref: ResourceRef | None = None) -> None:
        """Drop the cached tree of one resource, or of all resources."""
        if ref is None:
            self._trees.clear()
        else:
            self._trees.pop(ref, None)

    async def list_comments(self, ref: ResourceRef) -> list[Comment]:
        """Fetch the comment tree of a resource and replace the cached copy."""
        async with self._tracking(ref):
            raws = await self._api.list_comments(ref)
        comments = normalize_comments(raws)
        self._trees[ref] = comments
        logger.debug("comments_fetched", resource=str(ref), count=count_comments(comments))
        return comments

    async def create_comment(
        self,
        ref: ResourceRef,
        content: str,
        parent_id: str | None = None,
        attachments: list[PendingFile] | None = None,
    ) -> Comment:
        """Post a top-level comment, or a reply when ``parent_id`` is given.

        Raises:
            ValidationError: If there is neither text nor an attachment
            NotFoundError: If the parent comment is not in the cached tree
            FetchError: If the API call fails or the server returns no comment id
        """
        if not content.strip() and not attachments:
            raise ValidationError("Comment cannot be empty")
        if parent_id and self.find(ref, parent_id) is None:
            raise NotFoundError(f"Comment not found: {parent_id}")

        async with self._tracking(ref):
            raw = await self._api.create_comment(ref, content, parent_id or None, attachments)
        comment = normalize_comment(raw, parent_id or None)
        if not comment.id:
            logger.warning("comment_created_without_id", resource=str(ref), parent_id=parent_id)
            raise FetchError("Invalid response from server")

        tree = self.get(ref)
        if parent_id:
            updated = insert_reply(tree, parent_id, comment)
            if updated is None:
                # Parent was deleted while the request was in flight
                logger.warning("comment_parent_missing", resource=str(ref), parent_id=parent_id, comment_id=comment.id)
                return comment
        else:
            updated = [*tree, comment]
        self._trees[ref] = updated

        logger.info("comment_created", resource=str(ref), comment_id=comment.id, parent_id=parent_id)
        return comment

    async def update_comment(self, ref: ResourceRef, comment_id: str, content: str) -> Comment | None:
        """Replace the content of a comment; returns the patched node."""
        if not comment_id:
            raise NotFoundError("Invalid comment ID")

        async with self._tracking(ref):
            raw = await self._api.update_comment(comment_id, content)

        confirmed = normalize_comment(raw)
        changes = {
            "content": confirmed.content if raw.get("content") is not None else content,
            "updated_at": confirmed.updated_at or now(),
        }
        if not self._patch(ref, comment_id, replace_comment(self.get(ref), comment_id, changes)):
            return None

        logger.info("comment_updated", resource=str(ref), comment_id=comment_id)
        return self.find(ref, comment_id)

    async def delete_comment(self, ref: ResourceRef, comment_id: str) -> None:
        """Delete a comment; its replies leave the cached tree with it."""
        if not comment_id:
            raise NotFoundError("Invalid comment ID")

        async with self._tracking(ref):
            await self._api.delete_comment(comment_id)

        if self._patch(ref, comment_id, remove_comment(self.get(ref), comment_id)):
            logger.info("comment_deleted", resource=str(ref), comment_id=comment_id)

    async def like_comment(self, ref: ResourceRef, comment_id: str) -> Comment | None:
        return await self._set_liked(ref, comment_id, liked=True)

    async def unlike_comment(self, ref: ResourceRef, comment_id: str) -> Comment | None:
        return await self._set_liked(ref, comment_id, liked=False)

    async def _set_liked(self, ref: ResourceRef, comment_id: str, liked: bool) -> Comment | None:
        """Apply a like/unlike, preferring the like state reported by the server."""
        if not comment_id:
            raise NotFoundError("Invalid comment ID")

        async with self._tracking(ref):
            if liked:
                raw = await self._api.like_comment(comment_id)
            else:
                raw = await self._api.unlike_comment(comment_id)

        current = self.find(ref, comment_id)
        if current is None:
            logger.warning("comment_missing_after_like", resource=str(ref), comment_id=comment_id, liked=liked)
            return None

        like_count, server_liked = normalize_like_state(raw)
        if like_count is None:
            # Repeating the current state does not count twice
            delta = 0 if current.liked_by_current_user == liked else (1 if liked else -1)
            like_count = max(current.like_count + delta, 0)
        changes = {"like_count": like_count, "liked_by_current_user": liked if server_liked is None else server_liked}
        self._patch(ref, comment_id, replace_comment(self.get(ref), comment_id, changes))

        logger.debug("comment_like_changed", resource=str(ref), comment_id=comment_id, liked=liked, like_count=like_count)
        return self.find(ref, comment_id)

    def _patch(self, ref: ResourceRef, comment_id: str, updated: list[Comment] | None) -> bool:
        """Store a spliced tree; False when the node vanished before the response arrived."""
        if updated is None:
            logger.warning("comment_missing_after_response", resource=str(ref), comment_id=comment_id)
            return False
        self._trees[ref] = updated
        return True

    @asynccontextmanager
    async def _tracking(self, ref: ResourceRef) -> AsyncGenerator[None]:
        """Count a request as in flight for ``is_loading``."""
        self._in_flight[ref] += 1
        try:
            yield
        finally:
            self._in_flight[ref] -= 1
