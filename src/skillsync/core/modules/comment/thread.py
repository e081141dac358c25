"""Interaction controller and renderer for one comment thread.

A CommentThread translates user gestures (reply, edit, delete, like) into
CommentStore calls and keeps the transient per-comment UI state that goes with
them. ``render()`` turns the cached tree plus that state into view models; it
never calls the store's mutating operations or the network.
"""

from datetime import datetime
from enum import StrEnum

import structlog
from pydantic import BaseModel, Field

from skillsync.core.modules.attachment.models import PendingFile
from skillsync.core.modules.attachment.utils import format_file_size
from skillsync.core.modules.comment.models import Comment, CommentAttachment, CommentAuthor, ResourceRef
from skillsync.core.modules.comment.service import CommentStore
from skillsync.core.modules.comment.tree import count_comments, walk
from skillsync.errors import AccessDeniedError, NotFoundError, UserError
from skillsync.utils import now

logger = structlog.get_logger(__name__)

DEFAULT_MAX_DEPTH = 3
SUCCESS_AUTO_HIDE_SECONDS = 4.0
ERROR_AUTO_HIDE_SECONDS = 6.0


class NodeMode(StrEnum):
    VIEWING = "viewing"
    EDITING = "editing"
    REPLYING = "replying"


class NodeState(BaseModel):
    """Transient UI state of one comment; never persisted."""

    mode: NodeMode = NodeMode.VIEWING
    draft: str = ""  # Text of the open edit or reply composer
    busy: bool = False  # A call for this comment is awaiting the server
    menu_open: bool = False
    replies_hidden: bool = False


class NotificationSeverity(StrEnum):
    SUCCESS = "success"
    ERROR = "error"


class Notification(BaseModel):
    """Short-lived message shown after an action completes or fails."""

    severity: NotificationSeverity
    message: str
    created_at: datetime = Field(default_factory=now)
    auto_hide_seconds: float

    def is_expired(self, at: datetime) -> bool:
        return (at - self.created_at).total_seconds() >= self.auto_hide_seconds


class PendingFileView(BaseModel):
    filename: str
    size: str  # Human readable, e.g. "1.5 KB"
    mimetype: str


class ComposerView(BaseModel):
    """Top-level "write a comment" box."""

    text: str
    files: list[PendingFileView]
    busy: bool
    can_submit: bool


class CommentView(BaseModel):
    """Render model of one comment and the replies displayed below it."""

    id: str
    depth: int
    author: CommentAuthor
    content: str
    created_at: datetime
    edited: bool
    attachments: list[CommentAttachment]
    like_count: int
    liked: bool
    can_edit: bool
    can_delete: bool
    mode: NodeMode
    draft: str
    busy: bool
    menu_open: bool
    reply_count: int
    replies_hidden: bool
    replies_truncated: bool  # Replies exist below the maximum display depth
    replies: list["CommentView"]


class ThreadView(BaseModel):
    resource: ResourceRef
    comment_count: int  # Top-level comments
    total_count: int  # Comments at every depth
    loading: bool
    composer: ComposerView
    comments: list[CommentView]
    pending_delete_id: str | None  # Comment awaiting delete confirmation
    notifications: list[Notification]


class CommentThread:
    """Comment thread of one project or task as seen by one viewer."""

    def __init__(
        self,
        store: CommentStore,
        ref: ResourceRef,
        viewer: CommentAuthor | None,
        max_depth: int = DEFAULT_MAX_DEPTH,
    ) -> None:
        if max_depth < 0:
            raise ValueError("max_depth must not be negative")
        self._store = store
        self._ref = ref
        self._viewer = viewer
        self._max_depth = max_depth
        self._nodes: dict[str, NodeState] = {}
        self._composer_text = ""
        self._composer_files: list[PendingFile] = []
        self._composer_busy = False
        self._pending_delete: str | None = None
        self._notifications: list[Notification] = []

    @property
    def ref(self) -> ResourceRef:
        return self._ref

    def state(self, comment_id: str) -> NodeState:
        return self._nodes.setdefault(comment_id, NodeState())

    async def load(self) -> bool:
        """Fetch the thread from the server; failures become a notification."""
        try:
            await self._store.list_comments(self._ref)
        except UserError as e:
            self._notify_error(e, "Failed to load comments")
            return False
        return True

    def close(self) -> None:
        """Discard all transient UI state."""
        self._nodes.clear()
        self._composer_text = ""
        self._composer_files = []
        self._composer_busy = False
        self._pending_delete = None
        self._notifications.clear()

    # === Per-comment gestures ===
    def start_edit(self, comment_id: str) -> None:
        comment = self._require(comment_id)
        self._ensure_author(comment)
        state = self.state(comment_id)
        state.mode = NodeMode.EDITING
        state.draft = comment.content
        state.menu_open = False

    def start_reply(self, comment_id: str) -> None:
        self._require(comment_id)
        state = self.state(comment_id)
        state.mode = NodeMode.REPLYING
        state.draft = ""
        state.menu_open = False

    def set_draft(self, comment_id: str, text: str) -> None:
        self.state(comment_id).draft = text

    def cancel(self, comment_id: str) -> None:
        """Close the edit or reply composer of a comment."""
        state = self.state(comment_id)
        state.mode = NodeMode.VIEWING
        state.draft = ""

    def toggle_menu(self, comment_id: str) -> None:
        comment = self._require(comment_id)
        self._ensure_author(comment)
        state = self.state(comment_id)
        state.menu_open = not state.menu_open

    def toggle_replies(self, comment_id: str) -> None:
        state = self.state(comment_id)
        state.replies_hidden = not state.replies_hidden

    async def submit_edit(self, comment_id: str) -> bool:
        """Save the edit draft.

        A blank or unchanged draft closes the composer without a call. On
        failure the composer stays open with the draft intact.
        """
        state = self.state(comment_id)
        if state.mode != NodeMode.EDITING or state.busy:
            return False
        comment = self._store.find(self._ref, comment_id)
        if comment is None:
            self._drop_missing(comment_id)
            return False
        if not state.draft.strip() or state.draft == comment.content:
            self.cancel(comment_id)
            return False

        state.busy = True
        try:
            await self._store.update_comment(self._ref, comment_id, state.draft)
        except UserError as e:
            self._notify_error(e, "Failed to update comment")
            return False
        finally:
            state.busy = False

        self.cancel(comment_id)
        self._notify_success("Comment updated successfully!")
        return True

    async def submit_reply(self, comment_id: str) -> bool:
        """Post the reply draft under ``comment_id``."""
        state = self.state(comment_id)
        if state.mode != NodeMode.REPLYING or state.busy or not state.draft.strip():
            return False

        state.busy = True
        try:
            await self._store.create_comment(self._ref, state.draft, parent_id=comment_id)
        except UserError as e:
            self._notify_error(e, "Failed to post reply")
            return False
        finally:
            state.busy = False

        self.cancel(comment_id)
        state.replies_hidden = False
        self._notify_success("Reply posted successfully!")
        return True

    def request_delete(self, comment_id: str) -> None:
        """Ask for confirmation before deleting a comment."""
        comment = self._require(comment_id)
        self._ensure_author(comment)
        self.state(comment_id).menu_open = False
        self._pending_delete = comment_id

    def cancel_delete(self) -> None:
        self._pending_delete = None

    async def confirm_delete(self) -> bool:
        comment_id = self._pending_delete
        if comment_id is None:
            return False
        self._pending_delete = None

        comment = self._store.find(self._ref, comment_id)
        removed_ids = [node.id for node in walk([comment])] if comment else [comment_id]
        state = self.state(comment_id)
        state.busy = True
        try:
            await self._store.delete_comment(self._ref, comment_id)
        except UserError as e:
            self._notify_error(e, "Failed to delete comment")
            return False
        finally:
            state.busy = False

        for removed_id in removed_ids:
            self._nodes.pop(removed_id, None)
        self._notify_success("Comment deleted successfully!")
        return True

    async def toggle_like(self, comment_id: str) -> bool:
        """Like the comment, or unlike it when the viewer already does."""
        comment = self._store.find(self._ref, comment_id) if comment_id else None
        if comment is None:
            self._drop_missing(comment_id)
            return False
        state = self.state(comment_id)
        if state.busy:
            return False

        state.busy = True
        try:
            if comment.liked_by_current_user:
                await self._store.unlike_comment(self._ref, comment_id)
            else:
                await self._store.like_comment(self._ref, comment_id)
        except UserError as e:
            action = "unlike" if comment.liked_by_current_user else "like"
            self._notify_error(e, f"Failed to {action} comment")
            return False
        finally:
            state.busy = False
        return True

    # === Top-level composer ===
    def set_composer_text(self, text: str) -> None:
        self._composer_text = text

    def add_file(self, file: PendingFile) -> None:
        self._composer_files.append(file)

    def remove_file(self, index: int) -> None:
        if 0 <= index < len(self._composer_files):
            del self._composer_files[index]

    async def submit_comment(self) -> bool:
        """Post the composer text and files as a new top-level comment."""
        if self._composer_busy:
            return False

        self._composer_busy = True
        try:
            await self._store.create_comment(self._ref, self._composer_text, attachments=self._composer_files or None)
        except UserError as e:
            self._notify_error(e, "Failed to post comment")
            return False
        finally:
            self._composer_busy = False

        self._composer_text = ""
        self._composer_files = []
        self._notify_success("Comment posted successfully!")
        return True

    # === Notifications ===
    def active_notifications(self, at: datetime | None = None) -> list[Notification]:
        at = at or now()
        return [notification for notification in self._notifications if not notification.is_expired(at)]

    def dismiss(self, notification: Notification) -> None:
        if notification in self._notifications:
            self._notifications.remove(notification)

    def prune_notifications(self, at: datetime | None = None) -> None:
        self._notifications = self.active_notifications(at)

    # === Rendering ===
    def render(self, at: datetime | None = None) -> ThreadView:
        """Build the view of the thread; ``at`` decides which notifications are still shown."""
        comments = self._store.get(self._ref)
        composer_ready = bool(self._composer_text.strip() or self._composer_files)
        return ThreadView(
            resource=self._ref,
            comment_count=len(comments),
            total_count=count_comments(comments),
            loading=self._store.is_loading(self._ref),
            composer=ComposerView(
                text=self._composer_text,
                files=[
                    PendingFileView(filename=file.filename, size=format_file_size(file.size), mimetype=file.mimetype)
                    for file in self._composer_files
                ],
                busy=self._composer_busy,
                can_submit=composer_ready and not self._composer_busy,
            ),
            comments=[self._render_comment(comment, 0) for comment in comments],
            pending_delete_id=self._pending_delete,
            notifications=self.active_notifications(at),
        )

    def _render_comment(self, comment: Comment, depth: int) -> CommentView:
        state = self._nodes.get(comment.id) or NodeState()
        is_author = self._is_author(comment)
        expandable = depth < self._max_depth
        show_replies = expandable and not state.replies_hidden
        return CommentView(
            id=comment.id,
            depth=depth,
            author=comment.author,
            content=comment.content,
            created_at=comment.created_at,
            edited=comment.updated_at is not None,
            attachments=comment.attachments,
            like_count=comment.like_count,
            liked=comment.liked_by_current_user,
            can_edit=is_author,
            can_delete=is_author,
            mode=state.mode,
            draft=state.draft,
            busy=state.busy,
            menu_open=state.menu_open,
            reply_count=len(comment.replies),
            replies_hidden=state.replies_hidden,
            replies_truncated=bool(comment.replies) and not expandable,
            replies=[self._render_comment(reply, depth + 1) for reply in comment.replies] if show_replies else [],
        )

    # === Private helpers ===
    def _require(self, comment_id: str) -> Comment:
        comment = self._store.find(self._ref, comment_id) if comment_id else None
        if comment is None:
            raise NotFoundError(f"Comment not found: {comment_id}")
        return comment

    def _is_author(self, comment: Comment) -> bool:
        return self._viewer is not None and comment.is_written_by(self._viewer.id)

    def _ensure_author(self, comment: Comment) -> None:
        if not self._is_author(comment):
            raise AccessDeniedError("Only the author can change this comment")

    def _drop_missing(self, comment_id: str) -> None:
        """Reset the UI state of a comment that is no longer in the cached tree."""
        self._nodes.pop(comment_id, None)
        if self._pending_delete == comment_id:
            self._pending_delete = None
        self._notify_error(NotFoundError("This comment no longer exists"), "Comment not found")

    def _notify_success(self, message: str) -> None:
        self._notify(NotificationSeverity.SUCCESS, message, SUCCESS_AUTO_HIDE_SECONDS)

    def _notify_error(self, error: UserError, fallback: str) -> None:
        message = str(error) or fallback
        logger.info("comment_action_failed", resource=str(self._ref), error=message, error_type=type(error).__name__)
        self._notify(NotificationSeverity.ERROR, message, ERROR_AUTO_HIDE_SECONDS)

    def _notify(self, severity: NotificationSeverity, message: str, auto_hide_seconds: float) -> None:
        # Expired notifications are dropped whenever a new one arrives
        at = now()
        self._notifications = [notification for notification in self._notifications if not notification.is_expired(at)]
        self._notifications.append(
            Notification(severity=severity, message=message, created_at=at, auto_hide_seconds=auto_hide_seconds)
        )
