from pydantic_settings import BaseSettings


class Config(BaseSettings):
    """Client configuration loaded from environment variables."""

    api_url: str  # Base URL of the SkillSync REST API, e.g. https://api.skillsync.dev/api
    api_token: str | None = None  # Bearer token sent with every request (optional)
    request_timeout: float = 10.0  # Seconds before a remote call is reported as failed
    max_depth: int = 3  # Deepest reply level rendered by comment threads
    debug: bool = False

    model_config = {
        "env_file": [".env"],
        "env_prefix": "SKILLSYNC_",
        "extra": "ignore",
    }
