# =============================================================================
# AI Perfume Queue Client - Error Taxonomy
# =============================================================================
# Exceptions raised by the queue client. UploadError and JoinError abort a
# submission before the event stream is opened. The stream-phase errors are
# never raised by the client itself: stream failures settle as a typed
# Failure outcome, and JobOutcome.unwrap() maps each failure kind back to
# one of these classes for callers that prefer exceptions.
# =============================================================================


class QueueClientError(Exception):
    """Base class for every error raised by the queue client."""


# ---------------------------------------------------------------------------
# Pre-stream errors
# ---------------------------------------------------------------------------


class UploadError(QueueClientError):
    """The asset could not be read, sent, or the upload response was malformed."""


class JoinError(QueueClientError):
    """The queue-join request failed at the transport level or was rejected."""


# ---------------------------------------------------------------------------
# Stream-phase errors
# ---------------------------------------------------------------------------


class StreamPhaseError(QueueClientError):
    """A submission reached the event stream but did not produce a result."""


class StreamError(StreamPhaseError):
    """The push connection failed or ended before a terminal event."""


class ProcessingFailure(StreamPhaseError):
    """The server reported ``process_completed`` with ``success=false``."""


class StreamClosedWithoutResult(StreamPhaseError):
    """The server sent ``close_stream`` before any result."""


class IdleTimeoutError(StreamPhaseError, TimeoutError):
    """No event, heartbeat included, arrived within the idle window."""


class MalformedResultError(StreamPhaseError):
    """``process_completed`` succeeded but ``output.data[0]`` has the wrong shape."""
