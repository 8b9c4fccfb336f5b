# transport.py
# Description: HTTP transport to the spreadsheet-backed row store (read / write / delete)
#
# Imports
import json
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, TYPE_CHECKING
from urllib.parse import urlsplit, urlunsplit
#
# Third-party imports
import httpx
from loguru import logger
#
# Local imports
from .exceptions import TransportError, classify_store_error
#
if TYPE_CHECKING:
    from visittrack_API.app.core.config import SyncConfig
#
#######################################################################################################################
#
# Classes:

# Simple-request content type: the endpoint cannot answer a CORS preflight,
# so writes must never look like application/json.
PREFLIGHT_SAFE_CONTENT_TYPE = "text/plain;charset=utf-8"


def build_read_url(base_url: str) -> str:
    """Append ``action=read`` to the base URL, respecting an existing query string."""
    separator = "&" if "?" in base_url else "?"
    return f"{base_url}{separator}action=read"


def redact_url(url: str) -> str:
    """Drop the query string (which may carry keys) before logging a URL."""
    parts = urlsplit(url)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, "", ""))


class RowStoreTransport(ABC):
    """Abstract base class for the three stateless row store operations."""

    @abstractmethod
    async def read(self, config: "SyncConfig") -> List[Any]:
        """
        Fetch every data row from the store.

        Returns:
            The raw rows (positional lists or named objects) from the ``data`` field.

        Raises:
            ConfigError, TransportError, SyncError.
        """
        pass

    @abstractmethod
    async def write(self, config: "SyncConfig", data: Dict[str, Any]) -> None:
        """Send one row object for the store to update in place or append."""
        pass

    @abstractmethod
    async def delete(self, config: "SyncConfig", visit_id: str) -> None:
        """Ask the store to delete the row carrying ``visit_id``."""
        pass


class AppsScriptTransport(RowStoreTransport):
    """
    Transport for a spreadsheet exposed as a web app.

    Reads are a bare GET (no custom headers) and writes/deletes are POSTs with a
    text/plain body, both of which a browser would send without a preflight.
    The same request shapes are kept here so the endpoint sees identical
    traffic whichever client talks to it.
    """

    def __init__(self, client: Optional[httpx.AsyncClient] = None):
        self._client = client
        self._owns_client = client is None

    def _get_client(self, config: "SyncConfig") -> httpx.AsyncClient:
        if self._client is None:
            # The endpoint answers every call with a redirect to the rendered output;
            # the timeout is passed per request so each call honours its own config
            self._client = httpx.AsyncClient(timeout=config.timeout_seconds, follow_redirects=True)
        return self._client

    async def close(self):
        """Clean up the httpx client if this transport created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def read(self, config: "SyncConfig") -> List[Any]:
        url = build_read_url(config.validated_url())
        logger.debug(f"Reading rows from {redact_url(url)}")
        try:
            response = await self._get_client(config).get(url, timeout=config.timeout_seconds)
        except httpx.HTTPError as e:
            logger.error(f"HTTP request failed during read: {e}")
            raise TransportError(f"Failed to reach the row store: {e}", operation="read", original_error=e) from e

        payload = self._parse_response(response, "read")
        data = payload.get("data", [])
        if not isinstance(data, list):
            raise TransportError(
                f"Invalid read response: expected a list in 'data', got {type(data).__name__}",
                status_code=response.status_code,
                operation="read",
            )
        logger.info(f"Read {len(data)} rows from the row store")
        return data

    async def write(self, config: "SyncConfig", data: Dict[str, Any]) -> None:
        await self._post(config, {"action": "write", "data": data}, "write", data.get("id"))

    async def delete(self, config: "SyncConfig", visit_id: str) -> None:
        await self._post(config, {"action": "delete", "id": visit_id}, "delete", visit_id)

    async def _post(self, config: "SyncConfig", payload: Dict[str, Any], operation: str, visit_id: Optional[str]):
        url = config.validated_url()
        body = json.dumps(payload, ensure_ascii=False)
        logger.debug(f"Sending {operation} for id={visit_id} to {redact_url(url)}")
        try:
            response = await self._get_client(config).post(
                url,
                content=body.encode("utf-8"),
                headers={"Content-Type": PREFLIGHT_SAFE_CONTENT_TYPE},
                timeout=config.timeout_seconds,
            )
        except httpx.HTTPError as e:
            logger.error(f"HTTP request failed during {operation}: {e}")
            raise TransportError(
                f"Failed to reach the row store: {e}",
                operation=operation,
                context={'visit_id': visit_id},
                original_error=e,
            ) from e

        self._parse_response(response, operation, visit_id)
        logger.info(f"Row store acknowledged {operation} for id={visit_id}")

    @staticmethod
    def _parse_response(response: httpx.Response, operation: str, visit_id: Optional[str] = None) -> Dict[str, Any]:
        """
        Validate status, JSON-ness and the ``status`` field of a store response.

        Returns:
            The decoded payload, guaranteed to carry ``status == "success"``.
        """
        text = response.text
        if not response.is_success:
            logger.error(f"Row store returned HTTP {response.status_code} during {operation}")
            raise TransportError(
                f"Row store request failed: HTTP {response.status_code} {response.reason_phrase}",
                status_code=response.status_code,
                body=text,
                operation=operation,
            )

        try:
            payload = json.loads(text)
        except json.JSONDecodeError as e:
            error = TransportError(
                "Row store returned a non-JSON body",
                status_code=response.status_code,
                body=text,
                operation=operation,
                original_error=e,
            )
            if error.looks_like_html:
                logger.error("Row store returned HTML instead of JSON; check the URL and that the deployment is public")
            else:
                logger.error(f"Row store returned invalid JSON during {operation}: {error.body_excerpt!r}")
            raise error from e

        if not isinstance(payload, dict):
            raise TransportError(
                f"Row store returned JSON of type {type(payload).__name__}, expected an object",
                status_code=response.status_code,
                body=text,
                operation=operation,
            )

        if payload.get("status") == "success":
            return payload

        if payload.get("status") == "error":
            error = classify_store_error(payload.get("message"), operation, visit_id)
            logger.warning(f"Row store rejected {operation}: {type(error).__name__}: {error.store_message}")
            raise error

        # No explicit acknowledgement is never treated as success
        raise TransportError(
            f"Row store response has no recognised status: {payload.get('status')!r}",
            status_code=response.status_code,
            body=text,
            operation=operation,
        )

#
# End of transport.py
########################################################################################################################
