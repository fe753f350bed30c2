# =============================================================================
# AI Perfume Queue Client - Event Stream Interpreter
# =============================================================================
# Opens the per-session server-push stream (Server-Sent Events), decodes each
# event into a StreamEvent and drives a small state machine:
#
#   IDLE --stream opened--> CONNECTED --terminal event / error--> TERMINATED
#
# CONNECTED loops on non-terminal events, forwarding a status line for each.
# TERMINATED is absorbing: the outcome is settled once, the connection is
# closed once, and anything the server sends afterwards is ignored.
# =============================================================================

import asyncio
import json
import logging
from enum import Enum
from typing import AsyncIterator, Callable, Optional

import httpx

from config import Config
from shared.schemas import (
    CloseStreamEvent,
    Failure,
    FailureKind,
    JobOutcome,
    Mode,
    ProcessCompletedEvent,
    StreamEvent,
    Success,
    parse_event,
    parse_result,
)

logger = logging.getLogger(__name__)

StatusSink = Callable[[str], None]

SUCCESS_STATUS = "Process completed successfully!"

FAILURE_STATUS = {
    FailureKind.PROCESSING_FAILURE: "Processing error.",
    FailureKind.STREAM_CLOSED_WITHOUT_RESULT: "Stream closed without result.",
    FailureKind.STREAM_ERROR: "Stream error.",
    FailureKind.TIMEOUT: "Timed out waiting for server events.",
    FailureKind.MALFORMED_RESULT: "Malformed result.",
}


class StreamState(str, Enum):
    IDLE = "idle"
    CONNECTED = "connected"
    TERMINATED = "terminated"


def discard_status(status: str) -> None:
    """Status sink used when the caller supplies none."""


class StreamSubscription:
    """
    State machine for one session's event stream.

    Holds no connection itself; EventStreamInterpreter feeds it events in
    arrival order and closes the connection once it reports TERMINATED.

    Args:
        session_token: Session the stream belongs to (used for logging).
        on_status:     Callback receiving human-readable status lines.
        mode:          Mode of the submitted job. When given, a successful
                       result is parsed into that mode's payload model;
                       otherwise the raw ``output.data[0]`` is returned.
    """

    def __init__(
        self,
        session_token: str,
        on_status: Optional[StatusSink] = None,
        mode: Optional[Mode] = None,
    ):
        self.session_token = session_token
        self.state = StreamState.IDLE
        self.outcome: Optional[JobOutcome] = None
        self._on_status = on_status or discard_status
        self._mode = mode

    @property
    def terminated(self) -> bool:
        return self.state is StreamState.TERMINATED

    def connected(self) -> None:
        if self.state is StreamState.IDLE:
            self.state = StreamState.CONNECTED

    def handle(self, event: StreamEvent) -> Optional[JobOutcome]:
        """
        Apply one event.

        Returns:
            The outcome if this event settled the subscription, else None.
        """
        if self.state is StreamState.IDLE:
            raise RuntimeError("stream subscription received an event before connecting")
        if self.state is StreamState.TERMINATED:
            logger.debug(
                "Session %s: ignoring %r after termination", self.session_token, event.msg
            )
            return None

        logger.debug("Session %s: event %r", self.session_token, event.msg)

        if isinstance(event, ProcessCompletedEvent):
            return self._complete(event)
        if isinstance(event, CloseStreamEvent):
            return self.fail(
                FailureKind.STREAM_CLOSED_WITHOUT_RESULT,
                "server closed the stream without a result",
            )

        status = event.status_text()
        if status is not None:
            self._emit(status)
        return None

    def fail(self, kind: FailureKind, reason: str) -> JobOutcome:
        """Settle as a failure unless an outcome is already settled."""
        if self.terminated:
            return self.outcome
        return self._settle(Failure(kind=kind, reason=reason), FAILURE_STATUS[kind])

    def abandon(self) -> None:
        """Stop processing without settling; used when the caller cancels."""
        if not self.terminated:
            logger.info("Session %s: stream abandoned by caller", self.session_token)
            self.state = StreamState.TERMINATED

    def _complete(self, event: ProcessCompletedEvent) -> JobOutcome:
        if not event.success:
            return self.fail(
                FailureKind.PROCESSING_FAILURE, "server reported a processing failure"
            )
        try:
            data = event.result_data()
            payload = data if self._mode is None else parse_result(self._mode, data)
        except (LookupError, ValueError) as exc:
            return self.fail(FailureKind.MALFORMED_RESULT, str(exc))
        return self._settle(Success(payload=payload), SUCCESS_STATUS)

    def _settle(self, outcome: JobOutcome, status: str) -> JobOutcome:
        self.state = StreamState.TERMINATED
        self.outcome = outcome
        if isinstance(outcome, Failure):
            logger.warning(
                "Session %s failed (%s): %s",
                self.session_token, outcome.kind.value, outcome.reason,
            )
        else:
            logger.info("Session %s completed", self.session_token)
        self._emit(status)
        return outcome

    def _emit(self, status: str) -> None:
        """Forward a status line; a failing sink never unsettles the stream."""
        try:
            self._on_status(status)
        except Exception:
            logger.exception("Session %s: status sink failed on %r", self.session_token, status)


# ---------------------------------------------------------------------------
# Server-Sent Events framing
# ---------------------------------------------------------------------------


async def iter_sse_data(lines: AsyncIterator[str]) -> AsyncIterator[str]:
    """
    Group Server-Sent Events lines into event data strings.

    ``data:`` lines accumulate (joined with newlines) until a blank line
    dispatches them. Comment lines and other fields are skipped. A final
    event left unterminated at end of stream is still dispatched.
    """
    data_lines = []
    async for line in lines:
        line = line.rstrip("\r\n")
        if not line:
            if data_lines:
                yield "\n".join(data_lines)
                data_lines = []
            continue
        if line.startswith(":"):
            continue
        field, _, value = line.partition(":")
        if field != "data":
            continue
        if value.startswith(" "):
            value = value[1:]
        data_lines.append(value)
    if data_lines:
        yield "\n".join(data_lines)


async def _next_or_none(events: AsyncIterator[str]) -> Optional[str]:
    try:
        return await events.__anext__()
    except StopAsyncIteration:
        return None


def decode_event(data: str, session_token: str = "") -> Optional[StreamEvent]:
    """Decode one event's data, or None (logged) if it isn't a valid event."""
    try:
        return parse_event(json.loads(data))
    except ValueError as exc:
        logger.warning("Session %s: ignoring malformed event %r: %s", session_token, data, exc)
        return None


class EventStreamInterpreter:
    """
    Consumes the per-session event stream until a terminal outcome.

    Args:
        http:   Shared async HTTP client.
        config: Client configuration (data URL, idle timeout).
    """

    def __init__(self, http: httpx.AsyncClient, config: Config):
        self._http = http
        self._config = config

    @property
    def idle_timeout(self) -> Optional[float]:
        """Seconds of silence tolerated on the stream; None disables the guard."""
        seconds = self._config.idle_timeout_seconds
        return seconds if seconds and seconds > 0 else None

    async def subscribe(
        self,
        session_token: str,
        on_status: Optional[StatusSink] = None,
        mode: Optional[Mode] = None,
    ) -> JobOutcome:
        """
        Open the stream for ``session_token`` and run it to completion.

        Stream-phase problems never raise; they settle as a Failure. A status
        sink that raises is logged and skipped. If the calling task is
        cancelled the connection is closed and CancelledError propagates.

        Args:
            session_token: Session whose events to consume.
            on_status:     Callback receiving one status line per event.
            mode:          Mode of the job, used to type the success payload.

        Returns:
            JobOutcome: Success with the result payload, or a typed Failure.
        """
        subscription = StreamSubscription(session_token, on_status, mode)
        timeout = httpx.Timeout(self._config.request_timeout_seconds, read=None)

        logger.info("Opening event stream for session %s", session_token)
        try:
            async with self._http.stream(
                "GET",
                self._config.data_url,
                params={"session_hash": session_token},
                headers={"Accept": "text/event-stream"},
                timeout=timeout,
            ) as response:
                response.raise_for_status()
                subscription.connected()
                await self._consume(response, subscription)
        except httpx.HTTPError as exc:
            subscription.fail(FailureKind.STREAM_ERROR, f"event stream failed: {exc}")
        except asyncio.CancelledError:
            subscription.abandon()
            raise

        logger.debug("Session %s: event stream closed", session_token)
        return subscription.outcome

    async def _consume(self, response: httpx.Response, subscription: StreamSubscription) -> None:
        events = iter_sse_data(response.aiter_lines())
        try:
            while not subscription.terminated:
                try:
                    data = await asyncio.wait_for(_next_or_none(events), self.idle_timeout)
                except asyncio.TimeoutError:
                    subscription.fail(
                        FailureKind.TIMEOUT,
                        f"no event received within {self.idle_timeout}s",
                    )
                    break

                if data is None:
                    subscription.fail(
                        FailureKind.STREAM_ERROR, "stream ended before a terminal event"
                    )
                    break

                event = decode_event(data, subscription.session_token)
                if event is not None:
                    subscription.handle(event)
        finally:
            await events.aclose()
