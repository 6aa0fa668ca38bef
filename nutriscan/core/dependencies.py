"""
==============================================================================
FastAPI Dependencies Module
==============================================================================

Dependency injection for the scanning, lookup and contribution services.

Dependency Hierarchy:
--------------------
                    ┌────────────────┐
                    │ get_settings() │
                    └───────┬────────┘
          ┌─────────────────┼──────────────────┬────────────────────┐
          │                 │                  │                    │
┌─────────▼────────┐ ┌──────▼───────┐ ┌────────▼────────┐ ┌─────────▼─────────┐
│get_decoder_config│ │ get_lookup_  │ │ get_contribution│ │get_camera_provider│
└──────────────────┘ │   client     │ │    _client      │ └───────────────────┘
                     └──────┬───────┘ └─────────────────┘
                     ┌──────▼───────┐
                     │get_lookup_   │
                     │  workflow    │
                     └──────────────┘

Tests replace any of these with ``app.dependency_overrides``.

==============================================================================
"""

from __future__ import annotations

import logging
from functools import lru_cache

from fastapi import Depends

from nutriscan.config import Settings, get_settings
from nutriscan.contribution.client import ContributionClient
from nutriscan.db.database import get_db
from nutriscan.decoder import Decoder, DecoderConfig, create_decoder
from nutriscan.decoder.camera import CameraProvider, OpenCVCameraProvider, RemoteCameraProvider
from nutriscan.lookup.client import ProductLookupClient
from nutriscan.lookup.workflow import LookupWorkflow


# Module logger
logger = logging.getLogger(__name__)


@lru_cache()
def get_decoder() -> Decoder:
    """
    Shared decoder instance.

    The pyzbar backend is loaded on first use, so the API starts even when
    the zbar shared library is missing.
    """
    decoder = create_decoder()
    logger.info(f"🔍 Decoder ready: {type(decoder).__name__}")
    return decoder


def get_decoder_config(settings: Settings = Depends(get_settings)) -> DecoderConfig:
    return DecoderConfig.from_names(settings.symbology_names)


def get_lookup_client(settings: Settings = Depends(get_settings)) -> ProductLookupClient:
    return ProductLookupClient(settings)


def get_lookup_workflow(
    client: ProductLookupClient = Depends(get_lookup_client),
) -> LookupWorkflow:
    """A fresh workflow per request; it carries per-lookup state."""
    return LookupWorkflow(client)


def get_contribution_client(
    settings: Settings = Depends(get_settings),
) -> ContributionClient:
    return ContributionClient(settings)


def get_camera_provider(settings: Settings = Depends(get_settings)) -> CameraProvider:
    """Camera attached to the service host."""
    return OpenCVCameraProvider(settings.camera_index)


def get_remote_camera() -> RemoteCameraProvider:
    """Camera of a WebSocket client; one per connection."""
    return RemoteCameraProvider()


__all__ = [
    "get_db",
    "get_settings",
    "get_decoder",
    "get_decoder_config",
    "get_lookup_client",
    "get_lookup_workflow",
    "get_contribution_client",
    "get_camera_provider",
    "get_remote_camera",
]
