from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Optional

import requests

from bulk_loadgen.config import LoadConfig

logger = logging.getLogger(__name__)

__all__ = ["BulkResult", "BulkSender"]

# Bytes of the response body kept on a failed bulk, for the log line.
ERROR_BODY_PREVIEW = 512


@dataclass(frozen=True)
class BulkResult:
    """Outcome of one bulk request that reached the endpoint."""

    status_code: int
    doc_count: int
    body_bytes: int
    error_body: str = ""

    @property
    def ok(self) -> bool:
        return self.status_code < 300


class BulkSender:
    """
    POST framed batches to ``<base_url>/<index>/_bulk`` over one session.

    Each worker owns its own sender; ``requests.Session`` keeps the
    connection alive between batches. Transport failures propagate as
    ``requests.RequestException``; HTTP status codes never raise.
    """

    def __init__(
        self,
        url: str,
        headers: Dict[str, str],
        *,
        connect_timeout: float = 10.0,
        read_timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ):
        self.url = url
        self.headers = dict(headers)
        self.timeout = (connect_timeout, read_timeout)
        self._session = session or requests.Session()

    @classmethod
    def from_config(
        cls,
        config: LoadConfig,
        *,
        session: Optional[requests.Session] = None,
    ) -> "BulkSender":
        return cls(
            config.bulk_url,
            config.headers,
            connect_timeout=config.connect_timeout_s,
            read_timeout=config.read_timeout_s,
            session=session,
        )

    def send(self, body: bytes, doc_count: int) -> BulkResult:
        resp = self._session.post(
            self.url, data=body, headers=self.headers, timeout=self.timeout
        )
        try:
            status = resp.status_code
            error_body = ""
            if status >= 300:
                error_body = resp.text[:ERROR_BODY_PREVIEW]
        finally:
            resp.close()

        return BulkResult(
            status_code=status,
            doc_count=doc_count,
            body_bytes=len(body),
            error_body=error_body,
        )

    def close(self) -> None:
        self._session.close()
