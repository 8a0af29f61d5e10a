"""Pydantic models describing emitted JSON documents."""

from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, RootModel


class PrecacheEntryModel(BaseModel):
    url: str
    revision: Optional[str] = Field(
        default=None,
        description="Content digest, or null when the URL already embeds one.",
    )

    model_config = ConfigDict(extra="forbid")


class PrecacheManifestDocument(RootModel[List[PrecacheEntryModel]]):
    """Ordered list written to ``precache-manifest.json``."""


class AssetManifestDocument(RootModel[Dict[str, str]]):
    """Logical name to public URL mapping written to ``asset-manifest.json``."""


class ServiceWorkerSettings(BaseModel):
    precache: List[PrecacheEntryModel] = Field(default_factory=list)
    navigate_fallback: Optional[str] = None
    navigate_fallback_allowlist: List[str] = Field(default_factory=list)
    cache_name: str = "assetpipe-precache"

    model_config = ConfigDict(extra="forbid")


__all__ = [
    "AssetManifestDocument",
    "PrecacheEntryModel",
    "PrecacheManifestDocument",
    "ServiceWorkerSettings",
]
