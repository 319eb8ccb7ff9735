"""
Elasticsearch HTTP client.

Thin async wrapper around httpx that issues JSON PUTs and turns failures into
RemoteError instances carrying the cluster's structured error body.
"""

import logging
from typing import Any, Dict, Optional

import httpx

from .exceptions import wrap_http_exception
from .models import RequestOptions
from .signing import AwsSigV4Auth

logger = logging.getLogger(__name__)

JSON_HEADERS = {"Content-Type": "application/json"}


class ElasticsearchClient:
    """
    Async HTTP client for the target cluster.

    A single instance is shared by all concurrent PUTs of a run and must be
    closed afterwards, preferably with ``async with``.
    """

    def __init__(
        self,
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """
        Initialize the client.

        Args:
            timeout: Transport timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        self.timeout = timeout
        self._http_client = httpx.AsyncClient(
            timeout=httpx.Timeout(timeout), transport=transport
        )

    async def __aenter__(self) -> "ElasticsearchClient":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http_client.aclose()

    async def put(
        self,
        url: str,
        body: Any,
        options: Optional[RequestOptions] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Any:
        """
        PUT a JSON document.

        Args:
            url: Absolute target URL
            body: JSON-serializable document
            options: Signing options produced by the RequestSigner
            headers: Extra headers, merged over ``Content-Type: application/json``

        Returns:
            The decoded JSON response (None for an empty body)

        Raises:
            RemoteError: On transport failure or a non-2xx response
        """
        request_headers = dict(JSON_HEADERS)
        if headers:
            request_headers.update(headers)

        auth = None
        if options is not None and options.auth_params is not None:
            auth = AwsSigV4Auth(options.auth_params)

        logger.debug(f"PUT {url}")
        try:
            kwargs: Dict[str, Any] = {"json": body, "headers": request_headers}
            if auth is not None:
                kwargs["auth"] = auth
            response = await self._http_client.put(url, **kwargs)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise wrap_http_exception(e, url) from e

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return response.text
