"""Data source contract and the HTTP implementation.

A data source answers one question: "give me page *n* of *size* records,
sorted by *key* in *order*, matching *filter*".  The grid controller only
depends on the :class:`DataSource` protocol; :class:`HttpDataSource` talks to
a JSON API and :class:`~reflex_paged_grid.lazyframe_source.LazyFrameDataSource`
serves a polars LazyFrame in-process.
"""

from typing import Any, Protocol
from urllib.parse import urlencode

import httpx

from reflex_paged_grid.config import GridConfig, default_config
from reflex_paged_grid.models import Page, SortOrder


class FetchError(RuntimeError):
    """A data source could not produce the requested page."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class DataSource(Protocol):
    async def get_page(
        self,
        page: int,
        page_size: int,
        sort_property_name: str,
        sort_order: SortOrder,
        filter: Any,
    ) -> Page:
        ...


class HttpDataSource:
    """Fetch pages from a JSON endpoint with ``httpx``.

    The request is a ``GET`` on *url* with paging and sorting query
    parameters named by the :class:`GridConfig`, followed by the filter's
    query string fragment::

        GET /api/people?Page=2&PageSize=20&SortOn=lastName&SortOrder=asc&department=Sales

    The JSON body is parsed by :meth:`GridConfig.get_page`.

    Args:
        url: Endpoint URL (may already carry a query string).
        config: Parameter naming and response parsing; defaults to the
            shared :data:`~reflex_paged_grid.config.default_config`.
        client: An existing ``httpx.AsyncClient``.  When omitted one is
            created on first use and closed by :meth:`aclose`.
        headers: Extra request headers for a client created here.
        timeout: Timeout in seconds for a client created here.
    """

    def __init__(
        self,
        url: str,
        *,
        config: GridConfig | None = None,
        client: httpx.AsyncClient | None = None,
        headers: dict[str, str] | None = None,
        timeout: float = 30.0,
    ) -> None:
        self.url = url
        self.config = config or default_config
        self._client = client
        self._owns_client = client is None
        self._headers = headers or {}
        self._timeout = timeout

    def build_url(
        self,
        page: int,
        page_size: int,
        sort_property_name: str,
        sort_order: SortOrder,
        filter: Any,
    ) -> str:
        """Return the request URL for one page."""
        params: list[tuple[str, str]] = [
            (self.config.page_parameter_name, str(page)),
            (self.config.page_size_parameter_name, str(page_size)),
        ]
        order_token = self.config.sort_order_token(sort_order)
        if sort_property_name and order_token:
            params.append((self.config.sort_on_parameter_name, sort_property_name))
            params.append((self.config.sort_order_parameter_name, order_token))

        query = urlencode(params)
        fragment = str(filter).lstrip("?&") if filter else ""
        if fragment:
            query = f"{query}&{fragment}"
        separator = "&" if "?" in self.url else "?"
        return f"{self.url}{separator}{query}"

    async def get_page(
        self,
        page: int,
        page_size: int,
        sort_property_name: str,
        sort_order: SortOrder,
        filter: Any,
    ) -> Page:
        url = self.build_url(page, page_size, sort_property_name, sort_order, filter)
        client = self._get_client()
        try:
            response = await client.get(url)
        except httpx.HTTPError as exc:
            raise FetchError(f"Request to {url} failed: {exc}") from exc

        if response.is_error:
            raise FetchError(
                f"Request to {url} returned HTTP {response.status_code}",
                status_code=response.status_code,
            )

        try:
            payload: dict[str, Any] = response.json()
        except ValueError as exc:
            raise FetchError(
                f"Response from {url} is not valid JSON",
                status_code=response.status_code,
            ) from exc

        return self.config.get_page(payload, page_size, page)

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(headers=self._headers, timeout=self._timeout)
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "HttpDataSource":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()
