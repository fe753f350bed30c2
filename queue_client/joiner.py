# =============================================================================
# AI Perfume Queue Client - Queue Joiner
# =============================================================================
# Provides the QueueJoiner class that enqueues a job referencing an uploaded
# file. The join call is fire-and-confirm: only the status code matters,
# the job's real progress arrives later on the event stream.
# =============================================================================

import logging

import httpx

from config import Config
from shared.errors import JoinError
from shared.schemas import JobRequest

logger = logging.getLogger(__name__)


class QueueJoiner:
    """
    Submits job envelopes to the queue-join endpoint.

    Args:
        http:   Shared async HTTP client.
        config: Client configuration (join URL, pipeline step identifiers).
    """

    def __init__(self, http: httpx.AsyncClient, config: Config):
        self._http = http
        self._config = config

    async def join(self, job: JobRequest) -> None:
        """
        Enqueue ``job`` for its session.

        Raises:
            JoinError: On transport failure or a non-2xx response. The event
                       stream must not be opened after this.
        """
        envelope = job.to_envelope(
            fn_index=self._config.fn_index,
            trigger_id=self._config.trigger_id,
        )
        try:
            response = await self._http.post(
                self._config.join_url,
                json=envelope.model_dump(),
                timeout=self._config.request_timeout_seconds,
            )
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise JoinError(f"queue join failed: {exc}") from exc

        logger.info(
            "Joined queue for session %s (mode=%s, event_id=%s)",
            job.session_token, job.mode.value, _event_id(response),
        )


def _event_id(response: httpx.Response):
    """Best-effort event id from the acknowledgement, for logging only."""
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict):
        return body.get("event_id")
    return None
