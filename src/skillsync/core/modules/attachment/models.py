from pathlib import Path

from pydantic import BaseModel, Field

from skillsync.core.modules.attachment.utils import guess_mimetype, sanitize_filename


class PendingFile(BaseModel):
    """File selected in a composer, uploaded together with a new comment."""

    filename: str = Field(..., description="Filename sent to the server (sanitized)")
    content: bytes = Field(..., description="Raw file content")
    mimetype: str = Field(..., description="Content type (e.g., image/png)")

    @property
    def size(self) -> int:
        return len(self.content)

    @classmethod
    def from_bytes(cls, filename: str, content: bytes, mimetype: str | None = None) -> "PendingFile":
        """Create a pending file, sanitizing the name and guessing a missing content type."""
        return cls(filename=sanitize_filename(filename), content=content, mimetype=mimetype or guess_mimetype(filename))

    @classmethod
    def from_path(cls, path: Path, mimetype: str | None = None) -> "PendingFile":
        """Read a file from disk into a pending upload."""
        return cls.from_bytes(path.name, path.read_bytes(), mimetype)
