# Copyright (c) Solidpod Contributors. All rights reserved.
# Licensed under the MIT License.
"""HTTP transport for talking to a Solid server.

Resolves server-relative URIs against the configured base URL, sends
requests through a shared ``httpx.Client``, and turns transport-level
failures into :class:`~solidpod.exceptions.RequestFailed`. HTTP error
statuses are returned to the caller untouched; every component decides
for itself which statuses count as success.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

import httpx

from solidpod.exceptions import RequestFailed

logger = logging.getLogger(__name__)

SUCCESS_STATUSES = frozenset({200, 201, 202, 204})


def is_success(response: httpx.Response) -> bool:
    """True for the statuses Solid servers use to acknowledge a write."""
    return response.status_code in SUCCESS_STATUSES


class HttpTransport:
    """Thin wrapper around ``httpx.Client`` bound to one Solid server.

    Args:
        base_url: Base URL of the Solid server.
        timeout_seconds: Transport timeout; callers add their own policy on top.
        verify: TLS verification flag or CA bundle path.
        client: Pre-built ``httpx.Client`` (e.g. with ``httpx.MockTransport``).
        metrics: Optional metrics collector.
    """

    def __init__(
        self,
        base_url: str,
        timeout_seconds: float = 30.0,
        verify: bool | str = True,
        client: Optional[httpx.Client] = None,
        metrics=None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=timeout_seconds, verify=verify)
        self._metrics = metrics

    @classmethod
    def from_config(cls, config, client: Optional[httpx.Client] = None, metrics=None) -> "HttpTransport":
        return cls(
            config.server_url,
            timeout_seconds=config.timeout_seconds,
            verify=config.verify_tls,
            client=client,
            metrics=metrics,
        )

    def absolute(self, uri: str) -> str:
        """Return ``uri`` as an absolute URL, joining relative paths to the base URL."""
        if uri.startswith(("http://", "https://")):
            return uri
        return f"{self.base_url}/{uri.lstrip('/')}"

    def send(
        self,
        method: str,
        uri: str,
        *,
        headers: Optional[Mapping[str, str]] = None,
        content: Optional[str | bytes] = None,
        data: Optional[Mapping[str, Any]] = None,
        json: Any = None,
        auth: Optional[tuple[str, str]] = None,
    ) -> httpx.Response:
        """Send one request and return the response, whatever its status.

        Raises:
            RequestFailed: If no response was received.
        """
        method = method.upper()
        url = self.absolute(uri)
        try:
            response = self._client.request(
                method,
                url,
                headers=dict(headers or {}),
                content=content,
                data=data,
                json=json,
                auth=auth,
            )
        except httpx.HTTPError as e:
            logger.warning("%s %s failed: %s", method, url, e)
            if self._metrics is not None:
                self._metrics.record_request(method, None)
            raise RequestFailed(method, url, str(e)) from e

        logger.debug("%s %s -> %d", method, url, response.status_code)
        if self._metrics is not None:
            self._metrics.record_request(method, response.status_code)
        return response

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> "HttpTransport":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
