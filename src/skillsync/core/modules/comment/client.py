"""HTTP client for the SkillSync comment endpoints."""

from typing import Any

import httpx
import structlog

from skillsync.core.modules.attachment.models import PendingFile
from skillsync.core.modules.comment.models import ResourceRef
from skillsync.errors import FetchError

logger = structlog.get_logger(__name__)


class CommentApiClient:
    """Thin wrapper over the comment REST API returning raw JSON records.

    Every failure (unreachable server, timeout, non-2xx status, malformed body)
    is reported as FetchError so callers deal with a single error type.
    """

    def __init__(self, http: httpx.AsyncClient) -> None:
        self._http = http

    async def list_comments(self, ref: ResourceRef) -> list[dict[str, Any]]:
        """Get the raw comment tree of a project or task."""
        payload = await self._request("GET", _thread_path(ref))
        if payload is None:
            return []
        if isinstance(payload, dict):
            payload = payload.get("comments", payload.get("data", []))
        if not isinstance(payload, list):
            raise FetchError("Unexpected response while loading comments")
        return payload

    async def create_comment(
        self, ref: ResourceRef, content: str, parent_id: str | None = None, files: list[PendingFile] | None = None
    ) -> dict[str, Any]:
        """Create a comment, as multipart form data when files are attached."""
        if files:
            form = {"content": content, "entityId": ref.resource_id, "entityType": ref.resource_type.value}
            if parent_id:
                form["parentId"] = parent_id
            uploads = [("files", (file.filename, file.content, file.mimetype)) for file in files]
            payload = await self._request("POST", _thread_path(ref), data=form, files=uploads)
        else:
            body: dict[str, Any] = {"content": content}
            if parent_id:
                body["parentId"] = parent_id
            payload = await self._request("POST", _thread_path(ref), json=body)
        return _record(payload)

    async def update_comment(self, comment_id: str, content: str) -> dict[str, Any]:
        payload = await self._request("PATCH", f"/comments/{comment_id}", json={"content": content})
        return _record(payload)

    async def delete_comment(self, comment_id: str) -> None:
        await self._request("DELETE", f"/comments/{comment_id}")

    async def like_comment(self, comment_id: str) -> dict[str, Any]:
        """Like a comment; returns the like state reported by the server (may be empty)."""
        payload = await self._request("POST", f"/comments/{comment_id}/like")
        return _record(payload)

    async def unlike_comment(self, comment_id: str) -> dict[str, Any]:
        payload = await self._request("DELETE", f"/comments/{comment_id}/like")
        return _record(payload)

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        """Send a request and decode its JSON body (None for an empty body)."""
        try:
            response = await self._http.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            logger.warning("comment_api_unreachable", method=method, path=path, error=str(e))
            raise FetchError(f"Could not reach the server: {e}") from e

        if response.is_error:
            message = _error_message(response)
            logger.warning("comment_api_error", method=method, path=path, status_code=response.status_code, error=message)
            raise FetchError(message, status_code=response.status_code)

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            logger.warning("comment_api_bad_body", method=method, path=path, status_code=response.status_code)
            raise FetchError("Invalid response from server", status_code=response.status_code) from e


def _thread_path(ref: ResourceRef) -> str:
    return f"/comments/{ref.resource_type.value}/{ref.resource_id}"


def _record(payload: Any) -> dict[str, Any]:
    """Unwrap ``{"comment": {...}}`` or ``{"data": {...}}`` envelopes; empty bodies become an empty record."""
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise FetchError("Unexpected response from server")
    for key in ("comment", "data"):
        inner = payload.get(key)
        if isinstance(inner, dict):
            return inner
    return payload


def _error_message(response: httpx.Response) -> str:
    """Use the server's ``message`` field when it sends one."""
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and isinstance(body.get("message"), str):
        return body["message"]
    return f"Request failed with status {response.status_code}"
