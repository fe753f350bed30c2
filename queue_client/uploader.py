# =============================================================================
# AI Perfume Queue Client - Asset Uploader
# =============================================================================
# Provides the AssetUploader class responsible for reading a local image and
# sending it as a multipart upload bound to the session token. The server
# answers with the paths it stored the file under; the first one becomes
# the ServerFileReference used by the queue-join request.
# =============================================================================

import asyncio
import logging
from typing import Any

import httpx

from config import Config
from shared.errors import UploadError
from shared.schemas import DEFAULT_MIME_TYPE, AssetDescriptor, ServerFileReference

logger = logging.getLogger(__name__)


def _first_server_path(body: Any) -> str:
    """
    Extract the first server path from an upload response body.

    Raises:
        UploadError: If the body is not a non-empty list whose first entry
                     is a non-empty string.
    """
    if not isinstance(body, list):
        raise UploadError(f"upload response is not a list of paths: {body!r}")
    if not body:
        raise UploadError("upload response contained no paths")
    server_path = body[0]
    if not isinstance(server_path, str) or not server_path:
        raise UploadError(f"upload response path is not a string: {server_path!r}")
    return server_path


class AssetUploader:
    """
    Uploads a local asset to the queue service.

    Uploads are not idempotent: every call stores a new file server-side,
    so failures are reported rather than retried.

    Args:
        http:   Shared async HTTP client.
        config: Client configuration (service URL, file route, timeouts).
    """

    def __init__(self, http: httpx.AsyncClient, config: Config):
        self._http = http
        self._config = config

    async def upload(self, asset: AssetDescriptor, session_token: str) -> ServerFileReference:
        """
        Upload ``asset`` under ``session_token``.

        Args:
            asset:         The local asset to send.
            session_token: Token of the submission the file belongs to.

        Returns:
            ServerFileReference: Server path, public URL and file metadata.

        Raises:
            UploadError: If the asset can't be read, the request fails, or
                         the response holds no usable path.
        """
        try:
            payload = await asyncio.to_thread(asset.local_path.read_bytes)
        except OSError as exc:
            raise UploadError(f"cannot read {asset.local_path}: {exc}") from exc

        mime_type = asset.mime_type or DEFAULT_MIME_TYPE
        files = {"files": (asset.display_name, payload, mime_type)}

        try:
            response = await self._http.post(
                self._config.upload_url,
                params={"upload_id": session_token},
                files=files,
                timeout=self._config.request_timeout_seconds,
            )
            response.raise_for_status()
            body = response.json()
        except httpx.HTTPError as exc:
            raise UploadError(f"upload request failed: {exc}") from exc
        except ValueError as exc:
            raise UploadError(f"upload response is not JSON: {exc}") from exc

        server_path = _first_server_path(body)
        logger.info(
            "Uploaded %s (%d bytes, %s) for session %s -> %s",
            asset.display_name, len(payload), mime_type, session_token, server_path,
        )
        return ServerFileReference(
            server_path=server_path,
            public_url=self._config.file_url(server_path),
            display_name=asset.display_name,
            byte_size=len(payload),
            mime_type=mime_type,
        )
