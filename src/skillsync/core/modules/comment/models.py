from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, field_validator

from skillsync.utils import EPOCH

UNKNOWN_AUTHOR_NAME = "Unknown User"


class ResourceType(StrEnum):
    """Kinds of resources a comment thread can be attached to."""

    PROJECT = "project"
    TASK = "task"


class ResourceRef(BaseModel):
    """Identifies the project or task that owns a comment thread."""

    resource_type: ResourceType
    resource_id: str

    model_config = ConfigDict(frozen=True)

    @field_validator("resource_id", mode="before")
    @classmethod
    def _coerce_id(cls, value: object) -> object:
        return str(value) if isinstance(value, int) else value

    def __str__(self) -> str:
        return f"{self.resource_type}/{self.resource_id}"


class CommentAuthor(BaseModel):
    """Denormalized summary of the user who wrote a comment."""

    id: str = ""
    name: str = UNKNOWN_AUTHOR_NAME
    photo: str | None = None

    model_config = ConfigDict(frozen=True)


class CommentAttachment(BaseModel):
    """File attached to a comment at creation time."""

    id: str
    filename: str
    mimetype: str = "application/octet-stream"
    url: str

    model_config = ConfigDict(frozen=True)

    @property
    def is_image(self) -> bool:
        return self.mimetype.startswith("image/")


class Comment(BaseModel):
    """Comment on a project or task with nested replies.

    Instances are frozen: tree operations build new parents around a changed
    node and reuse every other branch as-is.
    """

    id: str
    content: str = ""
    author: CommentAuthor = Field(default_factory=CommentAuthor)
    created_at: datetime = EPOCH
    updated_at: datetime | None = None
    attachments: list[CommentAttachment] = Field(default_factory=list)
    replies: list["Comment"] = Field(default_factory=list)
    like_count: int = Field(0, ge=0)
    liked_by_current_user: bool = False
    parent_id: str | None = None  # None for top-level comments

    model_config = ConfigDict(frozen=True)

    def is_written_by(self, user_id: str | None) -> bool:
        """Whether the given user id is the author of this comment."""
        return bool(user_id) and self.author.id == str(user_id)


Comment.model_rebuild()
