# =============================================================================
# AI Perfume Queue Client - Submission Orchestrator
# =============================================================================
# Entry point for callers (UI layers, the CLI). One submit() call:
#   1. Generates a fresh session token
#   2. Uploads the image under that token
#   3. Joins the queue with the uploaded file and the selected mode
#   4. Streams the session's events until a terminal outcome
#
# Upload and join failures raise before any stream is opened; stream-phase
# failures come back as a typed Failure outcome.
# =============================================================================

import logging
import os
from typing import Optional, Union

import httpx

from config import Config, get_config
from queue_client.joiner import QueueJoiner
from queue_client.session import generate_session_token
from queue_client.stream import EventStreamInterpreter, StatusSink, discard_status
from queue_client.uploader import AssetUploader
from shared.errors import JoinError, UploadError
from shared.schemas import AssetDescriptor, JobOutcome, JobRequest, Mode

logger = logging.getLogger(__name__)

AssetLike = Union[AssetDescriptor, str, "os.PathLike[str]"]


class SubmissionOrchestrator:
    """
    Runs image submissions against the queue service.

    Submissions share nothing but the HTTP connection pool, so several
    submit() calls may run concurrently on one orchestrator.

    Args:
        config: Client configuration; defaults to the global Config.
        http:   Async HTTP client to use. When omitted the orchestrator
                creates one and closes it in aclose().

    Usage:
        async with SubmissionOrchestrator() as orchestrator:
            outcome = await orchestrator.submit("photo.jpg", Mode.CREATION, print)
    """

    def __init__(self, config: Optional[Config] = None, http: Optional[httpx.AsyncClient] = None):
        self._config = config or get_config()
        self._owns_http = http is None
        self._http = http or httpx.AsyncClient(verify=self._config.verify_tls)

        self._uploader = AssetUploader(self._http, self._config)
        self._joiner = QueueJoiner(self._http, self._config)
        self._interpreter = EventStreamInterpreter(self._http, self._config)

    async def __aenter__(self) -> "SubmissionOrchestrator":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the HTTP client if this orchestrator created it."""
        if self._owns_http:
            await self._http.aclose()

    async def submit(
        self,
        asset: AssetLike,
        mode: Union[Mode, str],
        on_status: Optional[StatusSink] = None,
    ) -> JobOutcome:
        """
        Submit one image and wait for its outcome.

        Args:
            asset:     AssetDescriptor, or a path to the image file.
            mode:      Processing mode (Mode or its string value).
            on_status: Callback receiving human-readable status lines.

        Returns:
            JobOutcome: Success with a RecommendationResult or CreationResult,
            or a Failure describing what went wrong on the stream.

        Raises:
            UploadError: The image could not be uploaded. Nothing was enqueued.
            JoinError:   The job could not be enqueued. No stream was opened.
            ValueError:  ``mode`` is not a known mode.
        """
        mode = Mode(mode)
        if not isinstance(asset, AssetDescriptor):
            asset = AssetDescriptor.from_path(asset)
        on_status = on_status or discard_status

        session_token = generate_session_token(self._config.session_token_length)
        logger.info(
            "Submitting %s (mode=%s, session=%s)", asset.display_name, mode.value, session_token
        )

        on_status("Uploading image...")
        try:
            file_reference = await self._uploader.upload(asset, session_token)
        except UploadError as exc:
            logger.error("Upload failed for session %s: %s", session_token, exc)
            on_status(f"Error uploading image: {exc}")
            raise

        job = JobRequest(file_reference=file_reference, mode=mode, session_token=session_token)
        on_status("Joining queue...")
        try:
            await self._joiner.join(job)
        except JoinError as exc:
            logger.error("Queue join failed for session %s: %s", session_token, exc)
            on_status(f"Error joining queue: {exc}")
            raise

        return await self._interpreter.subscribe(session_token, on_status, mode=mode)


async def submit_image(
    asset: AssetLike,
    mode: Union[Mode, str],
    on_status: Optional[StatusSink] = None,
    config: Optional[Config] = None,
) -> JobOutcome:
    """One-shot submit using a short-lived orchestrator."""
    async with SubmissionOrchestrator(config=config) as orchestrator:
        return await orchestrator.submit(asset, mode, on_status)
