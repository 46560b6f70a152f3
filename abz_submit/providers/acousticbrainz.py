from __future__ import annotations

import gzip
import http.client
import json
import logging
import urllib.parse
from pathlib import Path
from typing import Callable, Optional

from .. import __version__
from ..config import SubmitSettings
from ..models import SubmissionOutcome

logger = logging.getLogger(__name__)

ERROR_BODY_LIMIT = 4 * 1024
SUCCESS_STATUSES = {200, 201}

ConnectionFactory = Callable[..., http.client.HTTPConnection]


class AcousticBrainzClient:
    """Posts extractor output to the AcousticBrainz low-level submission endpoint."""

    def __init__(
        self,
        settings: SubmitSettings,
        connection_factory: Optional[ConnectionFactory] = None,
    ) -> None:
        self.settings = settings
        parsed = urllib.parse.urlsplit(settings.base_url)
        if parsed.scheme not in {"http", "https"} or not parsed.hostname:
            raise ValueError(f"Unsupported AcousticBrainz base URL: {settings.base_url}")
        self._scheme = parsed.scheme
        self._host = parsed.hostname
        self._port = parsed.port
        self._base_path = parsed.path.rstrip("/")
        self._connection_factory = connection_factory
        self.useragent = settings.user_agent or f"abz-submit/{__version__}"

    def endpoint(self, mbid: str) -> str:
        return f"{self._base_path}/api/v1/{mbid.lower()}/low-level"

    def url(self, mbid: str) -> str:
        netloc = self._host if self._port is None else f"{self._host}:{self._port}"
        return f"{self._scheme}://{netloc}{self.endpoint(mbid)}"

    def submit(self, mbid: str, output_path: Path) -> SubmissionOutcome:
        logger.debug("Posting to %s", self.url(mbid))
        headers = {
            "User-Agent": self.useragent,
            "Content-Type": "application/json",
            "Content-Encoding": "gzip",
        }
        conn = self._connect()
        try:
            if self.settings.gzip_payload:
                payload = gzip.compress(output_path.read_bytes())
                headers["Content-Length"] = str(len(payload))
                conn.request("POST", self.endpoint(mbid), body=payload, headers=headers)
            else:
                headers["Content-Length"] = str(output_path.stat().st_size)
                with output_path.open("rb") as fh:
                    conn.request("POST", self.endpoint(mbid), body=fh, headers=headers)
            response = conn.getresponse()
            if response.status in SUCCESS_STATUSES:
                response.read()
                return SubmissionOutcome(ok=True, status=response.status, reason=response.reason or "")
            message = self._read_error_message(response)
            return SubmissionOutcome(
                ok=False,
                status=response.status,
                reason=response.reason or "",
                message=message,
            )
        finally:
            conn.close()

    def _connect(self) -> http.client.HTTPConnection:
        factory = self._connection_factory
        if factory is None:
            factory = http.client.HTTPSConnection if self._scheme == "https" else http.client.HTTPConnection
        conn = factory(self._host, self._port, timeout=self.settings.connect_timeout_seconds)
        conn.connect()
        if conn.sock is not None:
            conn.sock.settimeout(self.settings.read_timeout_seconds)
        return conn

    @staticmethod
    def _read_error_message(response: http.client.HTTPResponse) -> Optional[str]:
        body = response.read(ERROR_BODY_LIMIT)
        if not body:
            return None
        message = body.decode("ascii", errors="replace")
        logger.error(message)
        if '"message":' in message:
            try:
                payload = json.loads(message)
            except ValueError as exc:
                logger.error("Failed to parse error response: %s", exc)
            else:
                if isinstance(payload, dict) and payload.get("message") is not None:
                    message = str(payload["message"])
        return message
