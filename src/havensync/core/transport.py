"""Single-shot HTTP transport for the HavenMind API."""

from __future__ import annotations

import logging
import time
from typing import Any, Dict, Literal, Optional, Tuple

import httpx

from .config import Settings
from .exceptions import ConfigurationError, PayloadError, TransportError
from .logging import EventLogger, get_event_logger

logger = logging.getLogger(__name__)

HttpMethod = Literal["GET", "POST", "PATCH"]

# (filename, content, mime type) as accepted by httpx multipart encoding
FilePart = Tuple[str, bytes, str]

GENERIC_ERROR_MESSAGE = "Unexpected API error"


class RequestTransport:
    """Issues exactly one request per call against the configured base URL.

    Every request shares one cookie jar so calls ride the same authenticated
    session as the rest of the application. No retry, timeout or backoff
    happens at this level.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        http_client: Optional[httpx.AsyncClient] = None,
        event_logger: Optional[EventLogger] = None,
    ):
        self.base_url = settings.api_base_url
        self.event_logger = event_logger or get_event_logger(settings.log_dir)
        self._owns_client = http_client is None
        self.http_client = http_client or httpx.AsyncClient(
            timeout=httpx.Timeout(None),
            cookies=settings.cookies,
        )
        if http_client is not None and settings.cookies:
            self.http_client.cookies.update(settings.cookies)

    async def request(
        self,
        path: str,
        method: HttpMethod,
        body: Optional[Dict[str, Any]] = None,
        *,
        files: Optional[Dict[str, FilePart]] = None,
    ) -> Any:
        """
        Send one request and return the decoded JSON payload.

        Args:
            path: Path relative to the base URL (e.g. "/projects")
            method: HTTP method
            body: JSON body, omitted when None
            files: Multipart file parts (the multipart encoder sets the content type)

        Returns:
            Decoded JSON, or None for 204 No Content

        Raises:
            ConfigurationError: If no base URL is configured
            TransportError: On a non-success status or a network failure
        """
        if not self.base_url:
            raise ConfigurationError("API base URL is not configured.")

        headers = {"Accept": "application/json"}
        kwargs: Dict[str, Any] = {}
        if files:
            kwargs["files"] = files
        else:
            headers["Content-Type"] = "application/json"
            if body is not None:
                kwargs["json"] = body

        url = f"{self.base_url}{path}"
        started = time.monotonic()
        try:
            response = await self.http_client.request(method, url, headers=headers, **kwargs)
        except httpx.HTTPError as e:
            elapsed = (time.monotonic() - started) * 1000
            logger.warning("%s %s failed after %.0f ms: %s", method, path, elapsed, e)
            await self.event_logger.log_request(method, path, None, elapsed)
            await self.event_logger.log_error("request", str(e), {"method": method, "path": path})
            raise TransportError(str(e) or GENERIC_ERROR_MESSAGE) from e

        elapsed = (time.monotonic() - started) * 1000
        logger.debug("%s %s -> %s (%.0f ms)", method, path, response.status_code, elapsed)
        await self.event_logger.log_request(method, path, response.status_code, elapsed)

        if not response.is_success:
            message = response.text or GENERIC_ERROR_MESSAGE
            await self.event_logger.log_error(
                "request", message, {"method": method, "path": path, "status_code": response.status_code}
            )
            raise TransportError(message, status_code=response.status_code)

        if response.status_code == 204:
            return None

        try:
            return response.json()
        except ValueError as e:
            raise PayloadError(f"Invalid JSON from {method} {path}: {e}") from e

    async def aclose(self) -> None:
        """Release the connection pool if this transport created it."""
        if self._owns_client:
            await self.http_client.aclose()

    async def __aenter__(self) -> "RequestTransport":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
