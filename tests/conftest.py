"""Shared fixtures: a scripted fake queue service behind httpx.MockTransport."""

import asyncio
import json
from typing import Any, Callable, Dict, List, Optional, Union

import httpx
import pytest
import pytest_asyncio

from config import Config
from queue_client.orchestrator import SubmissionOrchestrator

BASE_URL = "https://queue.test"

Chunk = Union[Dict[str, Any], bytes, BaseException]


def sse(event: Dict[str, Any]) -> bytes:
    """Frame one JSON event as a Server-Sent Events message."""
    return b"data: " + json.dumps(event).encode("utf-8") + b"\n\n"


def completed(data: Any = None, success: bool = True) -> Dict[str, Any]:
    event: Dict[str, Any] = {"msg": "process_completed", "success": success}
    if data is not None:
        event["output"] = {"data": [data]}
    return event


class RecordingStream(httpx.AsyncByteStream):
    """
    Event stream body that records whether the client closed it.

    Dict chunks are framed as SSE events, bytes are sent as-is, exceptions
    are raised mid-stream. With ``stall=True`` the stream never ends after
    its chunks, like a server that went silent.
    """

    def __init__(self, chunks: List[Chunk], stall: bool = False):
        self._chunks = chunks
        self._stall = stall
        self.closed = False
        self.close_count = 0

    async def __aiter__(self):
        for chunk in self._chunks:
            # let concurrent streams interleave
            await asyncio.sleep(0)
            if isinstance(chunk, BaseException):
                raise chunk
            if isinstance(chunk, dict):
                chunk = sse(chunk)
            yield chunk
        if self._stall:
            await asyncio.Event().wait()

    async def aclose(self) -> None:
        self.closed = True
        self.close_count += 1


class FakeQueueServer:
    """
    In-memory stand-in for the queue service's three endpoints.

    Attributes:
        uploads:      One record per upload request.
        joins:        Decoded JSON bodies of queue-join requests.
        streams:      RecordingStream per session that opened the stream.
        upload_paths: Body returned by /upload; None means a default path.
        events:       Chunks for every stream, or a callable
                      ``(session_hash, mode) -> chunks``.
    """

    def __init__(self):
        self.uploads: List[Dict[str, Any]] = []
        self.joins: List[Dict[str, Any]] = []
        self.streams: Dict[str, RecordingStream] = {}
        self.upload_paths: Optional[Any] = None
        self.upload_status = 200
        self.join_status = 200
        self.data_status = 200
        self.events: Union[List[Chunk], Callable[[str, str], List[Chunk]]] = []
        self.stall = False
        self._modes: Dict[str, str] = {}

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if request.method == "POST" and path == "/upload":
            return self._upload(request)
        if request.method == "POST" and path == "/queue/join":
            return self._join(request)
        if request.method == "GET" and path == "/queue/data":
            return self._data(request)
        return httpx.Response(404, json={"detail": "Not Found"})

    def _upload(self, request: httpx.Request) -> httpx.Response:
        upload_id = request.url.params.get("upload_id")
        self.uploads.append(
            {
                "upload_id": upload_id,
                "content_type": request.headers.get("content-type", ""),
                "body": request.content,
            }
        )
        if self.upload_status != 200:
            return httpx.Response(self.upload_status, text="upload rejected")
        paths = self.upload_paths
        if paths is None:
            paths = [f"/tmp/gradio/{upload_id}/look.jpg"]
        return httpx.Response(200, json=paths)

    def _join(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        self.joins.append(body)
        if self.join_status != 200:
            return httpx.Response(self.join_status, json={"detail": "join rejected"})
        self._modes[body["session_hash"]] = body["data"][1]
        return httpx.Response(200, json={"event_id": f"evt-{len(self.joins)}"})

    def _data(self, request: httpx.Request) -> httpx.Response:
        session = request.url.params.get("session_hash")
        if self.data_status != 200:
            return httpx.Response(self.data_status, text="no such session")
        chunks = self.events
        if callable(chunks):
            chunks = chunks(session, self._modes.get(session))
        stream = RecordingStream(list(chunks), stall=self.stall)
        self.streams[session] = stream
        return httpx.Response(
            200, headers={"content-type": "text/event-stream"}, stream=stream
        )


@pytest.fixture
def fake_server() -> FakeQueueServer:
    return FakeQueueServer()


@pytest.fixture
def config() -> Config:
    return Config(base_url=BASE_URL + "/", idle_timeout_seconds=2.0, request_timeout_seconds=5.0)


@pytest_asyncio.fixture
async def http_client(fake_server):
    transport = httpx.MockTransport(fake_server.handler)
    async with httpx.AsyncClient(transport=transport) as client:
        yield client


@pytest.fixture
def orchestrator(config, http_client) -> SubmissionOrchestrator:
    return SubmissionOrchestrator(config=config, http=http_client)


@pytest.fixture
def image_file(tmp_path):
    path = tmp_path / "look.jpg"
    path.write_bytes(b"\xff\xd8\xff\xe0 not really a jpeg")
    return path
