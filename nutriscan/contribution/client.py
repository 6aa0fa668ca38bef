"""
==============================================================================
Contribution Client Module
==============================================================================

Uploads a contribution draft to the Open Food Facts write endpoint.

Contract:
---------
    POST {off_base_url}{off_contribution_path}
    Content-Type: multipart/form-data
    timeout: contribution_timeout_seconds

Outcome is success or failure only. On failure the remote "message" (or
"status_verbose" for a status=0 reply) is surfaced when present.

==============================================================================
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from nutriscan.config import Settings, get_settings
from nutriscan.contribution.draft import ContributionDraft
from nutriscan.contribution.form import build_multipart, multipart_parts
from nutriscan.core import exceptions


# Module logger
logger = logging.getLogger(__name__)


SUCCESS_MESSAGE = "Product successfully contributed!"


def _remote_message(response: httpx.Response) -> Optional[str]:
    try:
        body: Any = response.json()
    except ValueError:
        return None
    if isinstance(body, dict):
        message = body.get("message") or body.get("status_verbose")
        return str(message) if message else None
    return None


class ContributionClient:
    """
    Async client for product contributions.

    Args:
        settings: Application settings (defaults to the global instance)
        transport: Optional httpx transport (tests pass httpx.MockTransport)
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._transport = transport

    async def submit(self, draft: ContributionDraft, app_uuid: str) -> str:
        """
        Validate and upload a draft.

        Returns:
            Success message

        Raises:
            AppException: CONTRIBUTION_VALIDATION_ERROR for an incomplete
                draft, CONTRIBUTION_SUBMIT_ERROR for any upload failure
        """
        draft.validate_draft()

        fields, files = build_multipart(
            draft,
            app_name=self._settings.client_app_name,
            app_version=self._settings.client_app_version,
            app_uuid=app_uuid,
        )
        url = self._settings.contribution_url
        logger.info(f"📤 Contributing product {draft.barcode} ({len(files)} image(s))")

        try:
            async with httpx.AsyncClient(
                headers={"User-Agent": self._settings.user_agent},
                timeout=self._settings.contribution_timeout_seconds,
                transport=self._transport,
            ) as client:
                response = await client.post(url, files=multipart_parts(fields, files))
                response.raise_for_status()

        except httpx.HTTPStatusError as e:
            message = _remote_message(e.response)
            logger.error(f"Contribution rejected with HTTP {e.response.status_code}: {message}")
            raise exceptions.contribution_submit_error(message) from e

        except httpx.RequestError as e:
            logger.error(f"Contribution upload failed: {e}")
            raise exceptions.contribution_submit_error() from e

        body = _safe_json(response)
        if isinstance(body, dict) and str(body.get("status", "1")) == "0":
            message = _remote_message(response)
            logger.error(f"Contribution refused: {message}")
            raise exceptions.contribution_submit_error(message)

        logger.info(f"✅ Product {draft.barcode} contributed")
        return SUCCESS_MESSAGE


def _safe_json(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return None
