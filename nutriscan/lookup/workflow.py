"""
==============================================================================
Lookup Workflow Module
==============================================================================

Fetches a product for a barcode and normalizes it for display.

Flow:
-----
1. loading = True
2. GET the product record
3. product present  -> normalize -> on_found(view_model)
   product missing  -> LOOKUP_NOT_FOUND -> on_error(message)
   HTTP / network   -> LOOKUP_HTTP_ERROR / LOOKUP_NETWORK_ERROR -> on_error(message)
4. loading = False (always)

Failures are returned as LookupFailure, never raised.

==============================================================================
"""

from __future__ import annotations

import inspect
import logging
from typing import Any, Awaitable, Callable, Optional, Union

from nutriscan.core import exceptions
from nutriscan.core.exceptions import AppException
from nutriscan.lookup.client import ProductLookupClient
from nutriscan.lookup.models import LookupFailure, ProductViewModel
from nutriscan.lookup.normalizer import normalize_product


# Module logger
logger = logging.getLogger(__name__)


FoundCallback = Callable[[ProductViewModel], Union[None, Awaitable[None]]]
ErrorCallback = Callable[[str], Union[None, Awaitable[None]]]

LookupResult = Union[ProductViewModel, LookupFailure]


async def _notify(callback: Optional[Callable[[Any], Any]], value: Any) -> None:
    if callback is None:
        return
    result = callback(value)
    if inspect.isawaitable(result):
        await result


class LookupWorkflow:
    """
    Product lookup with loading/result/error state.

    Attributes:
        loading: True while a request is in flight
        product: Last successful view model
        error: Last failure message

    Example:
        >>> workflow = LookupWorkflow(ProductLookupClient())
        >>> result = await workflow.lookup("5000112637922")
        >>> isinstance(result, ProductViewModel)
        True
    """

    def __init__(self, client: ProductLookupClient) -> None:
        self._client = client
        self.loading = False
        self.product: Optional[ProductViewModel] = None
        self.error: Optional[str] = None

    def reset(self) -> None:
        """Forget the previous result."""
        self.loading = False
        self.product = None
        self.error = None

    async def lookup(
        self,
        barcode: str,
        on_found: Optional[FoundCallback] = None,
        on_error: Optional[ErrorCallback] = None,
    ) -> LookupResult:
        """
        Look a barcode up and report the outcome through one callback.

        Args:
            barcode: Non-empty barcode
            on_found: Called with the view model on success
            on_error: Called with the failure message otherwise

        Returns:
            ProductViewModel or LookupFailure
        """
        self.product = None
        self.error = None
        self.loading = True

        try:
            code = (barcode or "").strip()
            if not code:
                raise exceptions.lookup_not_found(code)

            payload = await self._client.fetch(code)
            product = payload.get("product")
            if not isinstance(product, dict) or not product:
                raise exceptions.lookup_not_found(code)

            view_model = normalize_product(product, code)

        except Exception as e:
            if isinstance(e, AppException):
                error = e
            else:
                logger.exception(f"Unexpected lookup error for {barcode!r}")
                error = exceptions.internal_error(str(e) or type(e).__name__)

            logger.warning(f"❌ Lookup failed for {barcode!r}: {error.message}")
            failure = LookupFailure(
                code=error.code, message=error.message, status_code=error.status_code
            )
            self.error = failure.message
            await _notify(on_error, failure.message)
            return failure

        finally:
            self.loading = False

        logger.info(f"✅ Product found: {view_model.name} ({view_model.barcode})")
        self.product = view_model
        await _notify(on_found, view_model)
        return view_model
