"""
==============================================================================
Product Lookup Client Module
==============================================================================

HTTP adapter for the Open Food Facts product endpoint.

Contract:
---------
    GET {off_base_url}{off_product_path}/{barcode}.json
    Accept: application/json
    User-Agent: {client_app_name}/{client_app_version} ({contact_email})

One request per barcode, fixed timeout, no retry, no caching.

==============================================================================
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from nutriscan.config import Settings, get_settings
from nutriscan.core import exceptions


# Module logger
logger = logging.getLogger(__name__)


class ProductLookupClient:
    """
    Async client for product lookups.

    Args:
        settings: Application settings (defaults to the global instance)
        transport: Optional httpx transport (tests pass httpx.MockTransport)

    Example:
        >>> client = ProductLookupClient()
        >>> payload = await client.fetch("5000112637922")
        >>> payload["product"]["product_name"]
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._transport = transport

    @property
    def headers(self) -> Dict[str, str]:
        return {
            "Accept": "application/json",
            "User-Agent": self._settings.user_agent,
        }

    async def fetch(self, barcode: str) -> Dict[str, Any]:
        """
        Fetch the raw lookup response for a barcode.

        Returns:
            Decoded JSON body (``{"product": {...}}`` or ``{}``)

        Raises:
            AppException: LOOKUP_HTTP_ERROR on non-2xx status,
                LOOKUP_NETWORK_ERROR on transport or decoding failure
        """
        url = self._settings.product_url(barcode)
        logger.debug(f"GET {url}")

        try:
            async with httpx.AsyncClient(
                headers=self.headers,
                timeout=self._settings.lookup_timeout_seconds,
                transport=self._transport,
            ) as client:
                response = await client.get(url)
                response.raise_for_status()
                data = response.json()

        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            logger.warning(f"Lookup for {barcode} failed with HTTP {status}")
            raise exceptions.lookup_http_error(status, e.response.reason_phrase) from e

        except httpx.TimeoutException as e:
            logger.warning(f"Lookup for {barcode} timed out")
            raise exceptions.lookup_network_error(
                str(e) or f"timeout of {self._settings.lookup_timeout_seconds:g}s exceeded"
            ) from e

        except httpx.RequestError as e:
            logger.warning(f"Lookup for {barcode} failed: {e}")
            raise exceptions.lookup_network_error(str(e) or type(e).__name__) from e

        except ValueError as e:
            logger.warning(f"Lookup for {barcode} returned invalid JSON")
            raise exceptions.lookup_network_error(f"Invalid response: {e}") from e

        return data if isinstance(data, dict) else {}
