from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any

import httpx

"""Sheet fetcher: retrieve the raw registration table through the sheet proxy.

The proxy (a script endpoint reading the shared spreadsheet) is called as
``GET <proxy_endpoint>?url=<sheet url>`` and answers with a JSON
array-of-arrays whose first row holds the headers. Script proxies often
answer 200 with an HTML error page instead of JSON; the body is therefore
validated into a tagged result before any downstream code sees it.
"""

__all__ = [
    "EmptyOrInvalid",
    "EmptyOrInvalidSheetError",
    "FetchError",
    "Malformed",
    "MalformedResponseError",
    "SheetFetcher",
    "SheetSourceError",
    "ValidTable",
    "select_proxy_endpoint",
    "validate_payload",
]

logger = logging.getLogger(__name__)

STATUS_SNIPPET_CHARS = 120
MALFORMED_SNIPPET_CHARS = 200
DEVELOPMENT_ENVIRONMENTS = frozenset({"dev", "development", "local"})

_TAG = re.compile(r"<[^>]+>")
_SPACES = re.compile(r"\s+")


class SheetSourceError(Exception):
    """Base class for failures fetching or validating the sheet."""


class FetchError(SheetSourceError):
    """Transport failure or non-2xx status from the proxy."""

    def __init__(self, status: int | None, snippet: str = "") -> None:
        self.status = status
        self.snippet = snippet
        label = status if status is not None else "no response"
        super().__init__(f"Failed to connect ({label}) {snippet}".rstrip())


class MalformedResponseError(SheetSourceError):
    """2xx response whose body is not JSON (typically an HTML error page)."""

    def __init__(self, snippet: str) -> None:
        self.snippet = snippet
        super().__init__(f"Unexpected response from sheet proxy: {snippet}")


class EmptyOrInvalidSheetError(SheetSourceError):
    """JSON body that is not an array of rows, or has no data rows."""


@dataclass(frozen=True)
class ValidTable:
    rows: list[list[Any]]


@dataclass(frozen=True)
class EmptyOrInvalid:
    reason: str


@dataclass(frozen=True)
class Malformed:
    snippet: str


def _strip_markup(body: str) -> str:
    text = _SPACES.sub(" ", _TAG.sub(" ", body)).strip()
    return text[:MALFORMED_SNIPPET_CHARS]


def validate_payload(body: str) -> ValidTable | EmptyOrInvalid | Malformed:
    """Classify a proxy response body.

    Only ValidTable carries rows; it guarantees a list of at least two rows
    whose header row is itself a list.
    """
    try:
        rows = json.loads(body)
    except ValueError:
        return Malformed(_strip_markup(body))

    if not isinstance(rows, list):
        return EmptyOrInvalid(f"expected an array of rows, got {type(rows).__name__}")
    if len(rows) < 2:
        return EmptyOrInvalid("Sheet appears to be empty or has no data rows")
    if not isinstance(rows[0], list):
        return EmptyOrInvalid("header row is not an array")
    return ValidTable(rows)


def select_proxy_endpoint(
    environment: str, *, local_endpoint: str | None, direct_endpoint: str
) -> str:
    """Pick the proxy endpoint for an environment, once, before building a fetcher.

    Development uses the same-origin local proxy when configured; every other
    environment calls the script endpoint directly.
    """
    if environment.strip().lower() in DEVELOPMENT_ENVIRONMENTS and local_endpoint:
        return local_endpoint
    return direct_endpoint


class SheetFetcher:
    """Fetch raw sheet tables through a fixed proxy endpoint."""

    def __init__(
        self,
        proxy_endpoint: str,
        *,
        client: httpx.Client | None = None,
        timeout: float | None = None,
    ) -> None:
        self.proxy_endpoint = proxy_endpoint
        self.timeout = timeout
        self._client = client

    def fetch(self, source_url: str) -> list[list[Any]]:
        """Return the validated table for ``source_url``.

        Raises:
            FetchError: transport failure or non-2xx status
            MalformedResponseError: body is not JSON
            EmptyOrInvalidSheetError: body is not an array or has < 2 rows
        """
        logger.debug("fetching sheet via proxy=%s url=%s", self.proxy_endpoint, source_url)
        if self._client is not None:
            body = self._request(self._client, source_url)
        else:
            kwargs: dict[str, Any] = {"follow_redirects": True}
            if self.timeout is not None:
                kwargs["timeout"] = self.timeout
            with httpx.Client(**kwargs) as client:
                body = self._request(client, source_url)

        outcome = validate_payload(body)
        if isinstance(outcome, Malformed):
            raise MalformedResponseError(outcome.snippet)
        if isinstance(outcome, EmptyOrInvalid):
            raise EmptyOrInvalidSheetError(outcome.reason)
        logger.debug("sheet fetched rows=%d", len(outcome.rows))
        return outcome.rows

    def _request(self, client: httpx.Client, source_url: str) -> str:
        try:
            response = client.get(self.proxy_endpoint, params={"url": source_url})
        except httpx.HTTPError as exc:
            raise FetchError(None, str(exc)[:STATUS_SNIPPET_CHARS]) from exc

        body = response.text
        if not response.is_success:
            raise FetchError(response.status_code, body[:STATUS_SNIPPET_CHARS])
        return body
