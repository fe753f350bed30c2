# =============================================================================
# AI Perfume Queue Client - Shared Schemas
# =============================================================================
# Pydantic models defining the data contracts between the client and the
# queue service: the asset being submitted, the server-side file reference
# returned by the upload endpoint, the queue-join envelope, the push-event
# vocabulary of the event stream, and the typed outcome of a submission.
#
# Server payloads are loosely typed JSON keyed by a ``msg`` discriminator.
# They are parsed into a closed set of event models; anything unrecognized
# becomes an UnknownEvent which the stream interpreter ignores.
# =============================================================================

import mimetypes
import os
from enum import Enum
from pathlib import Path
from typing import Any, ClassVar, Dict, List, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

from shared.errors import (
    IdleTimeoutError,
    MalformedResultError,
    ProcessingFailure,
    StreamClosedWithoutResult,
    StreamError,
    StreamPhaseError,
)

DEFAULT_MIME_TYPE = "application/octet-stream"


class Mode(str, Enum):
    """Processing variant selected by the user for one submission."""

    RECOMMENDATION = "recommendation"
    CREATION = "creation"


# ---------------------------------------------------------------------------
# Submission inputs
# ---------------------------------------------------------------------------


class AssetDescriptor(BaseModel):
    """
    Local binary asset (an image) to submit.

    Attributes:
        local_path:   Filesystem path of the asset.
        display_name: Original file name reported to the server.
        byte_size:    Size in bytes if already known. The uploader always
                      uses the size of the bytes it actually read.
        mime_type:    Content type, ``application/octet-stream`` if unknown.
    """

    model_config = ConfigDict(frozen=True)

    local_path: Path
    display_name: str
    byte_size: Optional[int] = None
    mime_type: str = DEFAULT_MIME_TYPE

    @classmethod
    def from_path(cls, path: Union[str, "os.PathLike[str]"]) -> "AssetDescriptor":
        """Describe a local file, guessing its MIME type from the extension."""
        local_path = Path(path)
        mime_type, _ = mimetypes.guess_type(local_path.name)
        return cls(
            local_path=local_path,
            display_name=local_path.name,
            mime_type=mime_type or DEFAULT_MIME_TYPE,
        )


class ServerFileReference(BaseModel):
    """
    Handle to an uploaded file on the server.

    Only the uploader builds these, from a successful upload response; the
    queue-join request refers to the file through it.
    """

    model_config = ConfigDict(frozen=True)

    server_path: str
    public_url: str
    display_name: str
    byte_size: int
    mime_type: str

    def to_wire(self) -> Dict[str, Any]:
        """Serialize to the file object the queue-join endpoint expects."""
        return {
            "path": self.server_path,
            "url": self.public_url,
            "orig_name": self.display_name,
            "size": self.byte_size,
            "mime_type": self.mime_type,
        }


class JoinEnvelope(BaseModel):
    """Body of ``POST /queue/join``."""

    data: List[Any]
    event_data: None = None
    fn_index: int
    trigger_id: int
    session_hash: str


class JobRequest(BaseModel):
    """One job: an uploaded file, the chosen mode, and the session it belongs to."""

    model_config = ConfigDict(frozen=True)

    file_reference: ServerFileReference
    mode: Mode
    session_token: str

    def to_envelope(self, fn_index: int, trigger_id: int) -> JoinEnvelope:
        return JoinEnvelope(
            data=[self.file_reference.to_wire(), self.mode.value],
            fn_index=fn_index,
            trigger_id=trigger_id,
            session_hash=self.session_token,
        )


# ---------------------------------------------------------------------------
# Stream events
# ---------------------------------------------------------------------------


class StreamEvent(BaseModel):
    """Base class for one decoded server-push event."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    msg: str
    terminal: ClassVar[bool] = False

    def status_text(self) -> Optional[str]:
        """Status line forwarded to the caller, or None for silent events."""
        return None


class LogEvent(StreamEvent):
    level: str = "info"
    log: str = ""

    @field_validator("level", "log", mode="before")
    @classmethod
    def _null_as_default(cls, value: Any, info: ValidationInfo) -> Any:
        if value is None:
            return cls.model_fields[info.field_name].default
        return value

    def status_text(self) -> Optional[str]:
        return f"{self.level}: {self.log}"


class ProcessStartsEvent(StreamEvent):
    def status_text(self) -> Optional[str]:
        return "Process started..."


class QueueFullEvent(StreamEvent):
    def status_text(self) -> Optional[str]:
        return "Queue is full, please wait..."


class ProgressEvent(StreamEvent):
    progress: Any = None

    def status_text(self) -> Optional[str]:
        value = self.progress
        # 10.0 -> "10", matching how the server's own clients render it
        if isinstance(value, float) and value.is_integer():
            value = int(value)
        return f"Progress: {value}%"


class HeartbeatEvent(StreamEvent):
    def status_text(self) -> Optional[str]:
        return "Server is active..."


class ProcessCompletedEvent(StreamEvent):
    terminal: ClassVar[bool] = True

    success: Any = None
    output: Any = None

    def result_data(self) -> Any:
        """
        Return ``output.data[0]``.

        Raises:
            LookupError: If the output has no first data entry.
        """
        if not isinstance(self.output, Mapping):
            raise LookupError("process_completed event has no output")
        data = self.output.get("data")
        if not isinstance(data, list) or not data:
            raise LookupError("process_completed output has no data entries")
        return data[0]


class CloseStreamEvent(StreamEvent):
    terminal: ClassVar[bool] = True


class UnknownEvent(StreamEvent):
    """Event with a ``msg`` this client does not know. Ignored."""

    raw: Dict[str, Any] = Field(default_factory=dict)


_EVENT_TYPES = {
    "log": LogEvent,
    "process_starts": ProcessStartsEvent,
    "queue_full": QueueFullEvent,
    "progress": ProgressEvent,
    "heartbeat": HeartbeatEvent,
    "process_completed": ProcessCompletedEvent,
    "close_stream": CloseStreamEvent,
}


def parse_event(payload: Any) -> StreamEvent:
    """
    Decode one JSON event object into its StreamEvent model.

    Args:
        payload: The decoded JSON value of one event's data field.

    Returns:
        The matching event model, or UnknownEvent for an unrecognized ``msg``.

    Raises:
        ValueError: If the payload is not an object with a string ``msg``.
    """
    if not isinstance(payload, Mapping):
        raise ValueError(f"event payload is not an object: {type(payload).__name__}")
    msg = payload.get("msg")
    if not isinstance(msg, str):
        raise ValueError("event payload has no 'msg' discriminator")

    event_type = _EVENT_TYPES.get(msg)
    if event_type is None:
        return UnknownEvent(msg=msg, raw=dict(payload))
    return event_type.model_validate(payload)


# ---------------------------------------------------------------------------
# Result payloads
# ---------------------------------------------------------------------------


class RecommendationItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    image: str
    caption: str = ""

    @field_validator("caption", mode="before")
    @classmethod
    def _null_caption_as_empty(cls, value: Any) -> Any:
        return "" if value is None else value


class RecommendationResult(BaseModel):
    """Analysis text plus an ordered list of recommended images with captions."""

    model_config = ConfigDict(frozen=True)

    analysis: str = ""
    items: List[RecommendationItem] = Field(default_factory=list)


class CreationResult(BaseModel):
    """Caption text plus one or more generated image references."""

    model_config = ConfigDict(frozen=True)

    caption: str = ""
    images: List[str] = Field(min_length=1)

    @field_validator("images", mode="before")
    @classmethod
    def _single_image_as_list(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [value]
        return value


ResultPayload = Union[RecommendationResult, CreationResult]


def parse_result(mode: Mode, data: Any) -> ResultPayload:
    """
    Build the typed result for ``mode`` from ``output.data[0]``.

    Raises:
        ValueError: If ``data`` does not have the shape ``mode`` produces.
    """
    if not isinstance(data, Mapping):
        raise ValueError(f"result is not an object: {type(data).__name__}")

    if mode is Mode.RECOMMENDATION:
        items = data.get("data")
        return RecommendationResult(
            analysis=data.get("analysis") or "",
            items=items if items is not None else [],
        )
    return CreationResult(
        caption=data.get("caption") or "",
        images=data.get("image"),
    )


# ---------------------------------------------------------------------------
# Outcomes
# ---------------------------------------------------------------------------


class FailureKind(str, Enum):
    PROCESSING_FAILURE = "processing_failure"
    STREAM_CLOSED_WITHOUT_RESULT = "stream_closed_without_result"
    STREAM_ERROR = "stream_error"
    TIMEOUT = "timeout"
    MALFORMED_RESULT = "malformed_result"


_FAILURE_ERRORS = {
    FailureKind.PROCESSING_FAILURE: ProcessingFailure,
    FailureKind.STREAM_CLOSED_WITHOUT_RESULT: StreamClosedWithoutResult,
    FailureKind.STREAM_ERROR: StreamError,
    FailureKind.TIMEOUT: IdleTimeoutError,
    FailureKind.MALFORMED_RESULT: MalformedResultError,
}


class Success(BaseModel):
    """Terminal outcome carrying the result payload."""

    model_config = ConfigDict(frozen=True)

    payload: Any
    succeeded: ClassVar[bool] = True

    def unwrap(self) -> Any:
        return self.payload


class Failure(BaseModel):
    """Terminal outcome of a submission that produced no result."""

    model_config = ConfigDict(frozen=True)

    kind: FailureKind
    reason: str = ""
    succeeded: ClassVar[bool] = False

    def error(self) -> StreamPhaseError:
        """The exception matching this failure kind."""
        return _FAILURE_ERRORS[self.kind](self.reason or self.kind.value)

    def unwrap(self) -> Any:
        raise self.error()


JobOutcome = Union[Success, Failure]
