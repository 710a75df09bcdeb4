"""Remote analysis clients used by the sync pass."""

from __future__ import annotations

import asyncio
import json
from typing import Any, Protocol

import httpx

from cropdoc import __version__
from cropdoc.errors import RemoteProcessingError
from cropdoc.sync.record import MediaKind, PendingMediaRecord

_CONTENT_TYPES = {
    MediaKind.IMAGE: "image/jpeg",
    MediaKind.VIDEO: "video/mp4",
}


class RemoteProcessor(Protocol):
    """Sends one queued record for remote analysis.

    Implementations return normally on success and raise
    RemoteProcessingError on failure.
    """

    async def process(self, record: PendingMediaRecord) -> None: ...

    async def close(self) -> None: ...


class HttpRemoteProcessor:
    """Async HTTP client posting queued media to the analysis backend.

    Uses httpx.AsyncClient for connection pooling. Retries on transient
    failures (5xx, connection errors, timeouts) with exponential backoff
    but not on client errors (4xx).
    """

    def __init__(
        self,
        server_url: str,
        max_retries: int = 3,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the processor.

        Args:
            server_url: Base URL of the analysis backend
            max_retries: Maximum number of attempts per record
            timeout: Request timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        self.server_url = server_url.rstrip("/")
        self.max_retries = max_retries
        self.timeout = timeout

        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(timeout),
            headers={"User-Agent": f"cropdoc-agent/{__version__}"},
            transport=transport,
        )

    @staticmethod
    def _metadata(record: PendingMediaRecord) -> dict[str, Any]:
        return {
            "id": record.id,
            "fileType": record.media_kind.value,
            "createdAt": record.created_at,
            "durationSeconds": record.duration_seconds,
            "voiceTranscription": record.voice_note,
        }

    def _filename(self, record: PendingMediaRecord) -> str:
        if record.content_source == "file":
            return record.file_path.replace("\\", "/").rsplit("/", 1)[-1]
        extension = "mp4" if record.media_kind == MediaKind.VIDEO else "jpg"
        return f"{record.id}.{extension}"

    async def process(self, record: PendingMediaRecord) -> None:
        """Upload a record's content with retry.

        Raises:
            RemoteProcessingError: On a client error or once retries are exhausted.
        """
        content = record.read_content()
        files = {
            "file": (self._filename(record), content, _CONTENT_TYPES[record.media_kind]),
        }
        data = {"metadata": json.dumps(self._metadata(record))}

        attempt = 0
        last_error: str | None = None

        while attempt < self.max_retries:
            attempt += 1

            try:
                response = await self._client.post(
                    f"{self.server_url}/api/offline-media",
                    files=files,
                    data=data,
                )

                if response.status_code in (200, 201):
                    return

                # 4xx errors - don't retry
                if 400 <= response.status_code < 500:
                    raise RemoteProcessingError(
                        f"Client error: {response.status_code} - {response.text}",
                        record_id=record.id,
                    )

                last_error = f"Server error: {response.status_code}"

            except httpx.ConnectError as e:
                last_error = f"Connection error: {e}"
            except httpx.TimeoutException as e:
                last_error = f"Timeout: {e}"
            except httpx.HTTPError as e:
                last_error = f"HTTP error: {e}"

            if attempt < self.max_retries:
                await asyncio.sleep(2**attempt)

        raise RemoteProcessingError(
            last_error or "Max retries exceeded", record_id=record.id
        )

    async def check_server(self) -> bool:
        """Return True if the backend answers its health check."""
        try:
            response = await self._client.get(
                f"{self.server_url}/health",
                timeout=httpx.Timeout(5.0),
            )
            return response.status_code == 200
        except httpx.HTTPError:
            return False

    async def close(self) -> None:
        """Close the HTTP client and release resources."""
        await self._client.aclose()

    async def __aenter__(self) -> "HttpRemoteProcessor":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        await self.close()


class SimulatedRemoteProcessor:
    """Stand-in backend that waits briefly and accepts every record."""

    def __init__(self, delay: float = 0.5) -> None:
        self.delay = delay
        self.processed: list[str] = []

    async def process(self, record: PendingMediaRecord) -> None:
        await asyncio.sleep(self.delay)
        self.processed.append(record.id)

    async def close(self) -> None:
        pass
