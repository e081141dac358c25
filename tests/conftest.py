"""Shared pytest fixtures."""

import copy
import json
import re
from collections.abc import Callable
from typing import Any

import httpx
import pytest
import pytest_asyncio

from skillsync.core.modules.comment.models import CommentAuthor, ResourceRef, ResourceType
from skillsync.core.modules.comment.service import CommentStore
from skillsync.core.modules.comment.thread import CommentThread

API_URL = "http://api.skillsync.test"


def raw_thread() -> list[dict[str, Any]]:
    """Two top-level comments; the first has one reply which has one reply of its own."""
    return [
        {
            "_id": 1,
            "content": "Looks good to me",
            "author": {"_id": "u1", "name": "Alice", "photo": "https://cdn.test/alice.png"},
            "createdAt": "2024-05-01T10:00:00.000Z",
            "likes": 2,
            "isLiked": False,
            "replies": [
                {
                    "_id": 2,
                    "content": "Agreed",
                    "author": {"_id": "u2", "name": "Bob"},
                    "createdAt": "2024-05-01T11:00:00.000Z",
                    "replies": [
                        {
                            "_id": 3,
                            "content": "Shipping it",
                            "author": {"_id": "u1", "name": "Alice"},
                            "createdAt": "2024-05-01T12:00:00.000Z",
                        }
                    ],
                }
            ],
        },
        {
            "_id": 4,
            "content": "Please add tests",
            "author": {"_id": "u2", "name": "Bob"},
            "createdAt": "2024-05-02T09:00:00.000Z",
            "attachments": [
                {"file_id": 9, "filename": "diagram.png", "mimetype": "image/png", "url": "https://cdn.test/diagram.png"}
            ],
        },
    ]


class FakeCommentServer:
    """In-memory comment API served through httpx.MockTransport."""

    def __init__(self) -> None:
        self.threads: dict[tuple[str, str], list[dict[str, Any]]] = {}
        self.requests: list[httpx.Request] = []
        self.author = {"_id": "u1", "name": "Alice"}
        self.fail_next: int | None = None  # Status code returned by the next request
        self.like_state_in_response = True
        self.on_request: Callable[[httpx.Request], None] | None = None
        self._next_id = 100

    def seed(self, ref: ResourceRef, comments: list[dict[str, Any]]) -> None:
        self.threads[(ref.resource_type.value, ref.resource_id)] = copy.deepcopy(comments)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def methods(self) -> list[str]:
        return [f"{request.method} {request.url.path}" for request in self.requests]

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.on_request:
            self.on_request(request)
        if self.fail_next is not None:
            status, self.fail_next = self.fail_next, None
            return httpx.Response(status, json={"message": "Server exploded"})

        parts = request.url.path.strip("/").split("/")
        if len(parts) == 3 and parts[1] in ("project", "task"):
            thread = self.threads.setdefault((parts[1], parts[2]), [])
            if request.method == "GET":
                return httpx.Response(200, json=thread)
            return self._create(request, thread)

        comment_id = parts[1]
        node, siblings = self._locate(comment_id)
        if node is None or siblings is None:
            return httpx.Response(404, json={"message": "Comment not found"})

        if len(parts) == 3 and parts[2] == "like":
            liked = request.method == "POST"
            node["isLiked"] = liked
            node["likes"] = max(node.get("likes", 0) + (1 if liked else -1), 0)
            if not self.like_state_in_response:
                return httpx.Response(204)
            return httpx.Response(200, json={"likes": node["likes"], "isLiked": liked})
        if request.method == "PATCH":
            node["content"] = json.loads(request.content)["content"]
            node["updatedAt"] = "2024-06-01T08:00:00.000Z"
            return httpx.Response(200, json=node)
        if request.method == "DELETE":
            siblings.remove(node)
            return httpx.Response(204)
        return httpx.Response(405)

    def _create(self, request: httpx.Request, thread: list[dict[str, Any]]) -> httpx.Response:
        if request.headers["content-type"].startswith("multipart/form-data"):
            body = request.content.decode("utf-8", errors="replace")
            content_match = re.search(r'name="content"\r\n\r\n(.*?)\r\n', body, re.DOTALL)
            parent_match = re.search(r'name="parentId"\r\n\r\n(.*?)\r\n', body)
            fields = {
                "content": content_match.group(1) if content_match else "",
                "parentId": parent_match.group(1) if parent_match else None,
            }
            files = re.findall(r'name="files"; filename="(.*?)"', body)
        else:
            fields = json.loads(request.content)
            files = []

        self._next_id += 1
        record: dict[str, Any] = {
            "_id": self._next_id,
            "content": fields["content"],
            "author": dict(self.author),
            "createdAt": "2024-06-01T09:00:00.000Z",
            "attachments": [
                {"id": f"f{index}", "filename": name, "url": f"https://cdn.test/{name}", "mimetype": "text/plain"}
                for index, name in enumerate(files)
            ],
        }
        parent_id = fields.get("parentId")
        if parent_id:
            parent, _ = self._locate(str(parent_id))
            if parent is None:
                return httpx.Response(404, json={"message": "Parent comment not found"})
            record["parentId"] = parent_id
            parent.setdefault("replies", []).append(record)
        else:
            thread.append(record)
        return httpx.Response(201, json={"comment": record})

    def _locate(self, comment_id: str) -> tuple[dict[str, Any] | None, list[dict[str, Any]] | None]:
        def search(nodes: list[dict[str, Any]]) -> tuple[dict[str, Any] | None, list[dict[str, Any]] | None]:
            for node in nodes:
                if str(node["_id"]) == comment_id:
                    return node, nodes
                found = search(node.get("replies", []))
                if found[0] is not None:
                    return found
            return None, None

        for thread in self.threads.values():
            found = search(thread)
            if found[0] is not None:
                return found
        return None, None


@pytest.fixture
def ref():
    return ResourceRef(resource_type=ResourceType.PROJECT, resource_id="p1")


@pytest.fixture
def server(ref):
    fake = FakeCommentServer()
    fake.seed(ref, raw_thread())
    return fake


@pytest_asyncio.fixture
async def store(server):
    async with httpx.AsyncClient(base_url=API_URL, transport=server.transport()) as http:
        yield CommentStore(http)


@pytest.fixture
def alice():
    return CommentAuthor(id="u1", name="Alice")


@pytest.fixture
def thread(store, ref, alice):
    return CommentThread(store, ref, alice)


@pytest.fixture
def raw_comments():
    return raw_thread()
