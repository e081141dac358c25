"""Conversion of raw server comment records into canonical Comment models.

The backend has shipped several record shapes over time (Mongo-style ``_id``,
numeric SQL ids, camelCase and snake_case timestamps, flat ``author_*`` columns),
so every field is read from the first key that carries a value.
"""

from collections.abc import Iterable, Mapping
from datetime import UTC, datetime
from typing import Any, TypeAlias

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from skillsync.core.modules.comment.models import UNKNOWN_AUTHOR_NAME, Comment, CommentAttachment, CommentAuthor
from skillsync.utils import EPOCH

RawComment: TypeAlias = Mapping[str, Any] | Comment

_DATETIME = TypeAdapter(datetime)


def normalize_comments(raws: Iterable[RawComment], parent_id: str | None = None) -> list[Comment]:
    """Normalize a sequence of raw comment records, preserving order."""
    return [normalize_comment(raw, parent_id) for raw in raws]


def normalize_comment(raw: RawComment, parent_id: str | None = None) -> Comment:
    """Normalize one raw record and its reply subtree.

    Args:
        raw: Server record, or an already normalized Comment
        parent_id: Id of the enclosing comment when ``raw`` is a nested reply

    Returns:
        Canonical Comment with string ids, a non-null author and creation time
    """
    if isinstance(raw, Comment):
        return raw

    comment_id = _as_id(_first(raw, "_id", "id"))
    own_parent = _first(raw, "parentId", "parent_id", "replyTo")
    return Comment(
        id=comment_id,
        content=str(_first(raw, "content", "text") or ""),
        author=_normalize_author(raw),
        created_at=_as_datetime(_first(raw, "createdAt", "created_at")) or EPOCH,
        updated_at=_as_datetime(_first(raw, "updatedAt", "updated_at", "edited_at")),
        attachments=[_normalize_attachment(item) for item in _first(raw, "attachments", "files") or []],
        replies=normalize_comments(raw.get("replies") or [], parent_id=comment_id),
        like_count=_as_like_count(_first(raw, "likes", "likeCount", "like_count")),
        liked_by_current_user=bool(_first(raw, "isLiked", "likedByCurrentUser", "liked_by_current_user")),
        parent_id=_as_id(own_parent) if own_parent is not None else parent_id,
    )


def normalize_like_state(raw: Mapping[str, Any]) -> tuple[int | None, bool | None]:
    """Extract ``(like_count, liked)`` from a like/unlike response, None where absent."""
    count = _first(raw, "likes", "likeCount", "like_count")
    liked = _first(raw, "isLiked", "likedByCurrentUser", "liked_by_current_user")
    return (
        _as_like_count(count) if count is not None else None,
        bool(liked) if liked is not None else None,
    )


def _normalize_author(raw: Mapping[str, Any]) -> CommentAuthor:
    author = raw.get("author")
    if isinstance(author, CommentAuthor):
        return author

    if isinstance(author, Mapping):
        author_id = _first(author, "_id", "id")
        name = _first(author, "name", "username")
        photo = _first(author, "photo", "profilePicture")
    else:
        # Flat columns, or a bare author id in place of the object
        author_id = _first(raw, "author_id", "authorId")
        if author_id is None and isinstance(author, str | int):
            author_id = author
        name = raw.get("author_name")
        photo = raw.get("author_photo")

    return CommentAuthor(
        id=_as_id(author_id),
        name=str(name) if name else UNKNOWN_AUTHOR_NAME,
        photo=str(photo) if photo else None,
    )


def _normalize_attachment(raw: Mapping[str, Any] | CommentAttachment) -> CommentAttachment:
    if isinstance(raw, CommentAttachment):
        return raw

    url = str(_first(raw, "url", "path") or "")
    attachment_id = _first(raw, "id", "file_id", "_id")
    filename = _first(raw, "filename", "originalname", "name") or url.rsplit("/", 1)[-1] or "file"
    return CommentAttachment(
        id=_as_id(attachment_id) if attachment_id is not None else url,
        filename=str(filename),
        mimetype=str(_first(raw, "mimetype", "mime_type", "mimeType") or "application/octet-stream"),
        url=url,
    )


def _first(raw: Mapping[str, Any], *keys: str) -> Any:
    """Return the value of the first key present with a non-None value."""
    for key in keys:
        value = raw.get(key)
        if value is not None:
            return value
    return None


def _as_id(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def _as_datetime(value: Any) -> datetime | None:
    if value is None or value == "":
        return None
    try:
        parsed = _DATETIME.validate_python(value)
    except PydanticValidationError:
        return None
    # Naive timestamps are UTC so every comment stays comparable
    return parsed if parsed.tzinfo is not None else parsed.replace(tzinfo=UTC)


def _as_like_count(value: Any) -> int:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return max(value, 0)
    if isinstance(value, list | tuple):
        # Some endpoints return the ids of the users who liked the comment
        return len(value)
    return 0
