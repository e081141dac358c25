"""Tree-splice helpers over nested comment lists.

Every function is pure: it returns a new list and leaves the input untouched.
Only the path from the root to the affected node is rebuilt, all other
branches are shared with the input tree. Mutating helpers return None when
no node carries the requested id.
"""

from collections.abc import Callable, Iterator
from typing import Any

from skillsync.core.modules.comment.models import Comment


def walk(comments: list[Comment]) -> Iterator[Comment]:
    """Yield every comment of the tree in display order (depth-first)."""
    for comment in comments:
        yield comment
        yield from walk(comment.replies)


def find_comment(comments: list[Comment], comment_id: str) -> Comment | None:
    return next((comment for comment in walk(comments) if comment.id == comment_id), None)


def count_comments(comments: list[Comment]) -> int:
    """Count comments at every depth."""
    return sum(1 + count_comments(comment.replies) for comment in comments)


def insert_reply(comments: list[Comment], parent_id: str, reply: Comment) -> list[Comment] | None:
    """Append ``reply`` as the last reply of the comment ``parent_id``."""
    return _splice(comments, parent_id, lambda parent: [parent.model_copy(update={"replies": [*parent.replies, reply]})])


def replace_comment(comments: list[Comment], comment_id: str, changes: dict[str, Any]) -> list[Comment] | None:
    """Apply ``changes`` to the fields of the comment ``comment_id``."""
    return _splice(comments, comment_id, lambda comment: [comment.model_copy(update=changes)])


def remove_comment(comments: list[Comment], comment_id: str) -> list[Comment] | None:
    """Remove the comment ``comment_id`` together with its replies."""
    return _splice(comments, comment_id, lambda _: [])


def _splice(
    comments: list[Comment], comment_id: str, splice: Callable[[Comment], list[Comment]]
) -> list[Comment] | None:
    for index, comment in enumerate(comments):
        if comment.id == comment_id:
            return [*comments[:index], *splice(comment), *comments[index + 1 :]]
        if comment.replies:
            replies = _splice(comment.replies, comment_id, splice)
            if replies is not None:
                return [*comments[:index], comment.model_copy(update={"replies": replies}), *comments[index + 1 :]]
    return None
