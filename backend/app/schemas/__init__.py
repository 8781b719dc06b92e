"""Pydantic schema exports."""

from .matching import (
    AssetPnLSchema,
    AssetSummarySchema,
    DateGroupSchema,
    MatchResponse,
    PnLMatchSchema,
    PnLResponse,
    SellMatchSchema,
)

__all__ = [
    "AssetPnLSchema",
    "AssetSummarySchema",
    "DateGroupSchema",
    "MatchResponse",
    "PnLMatchSchema",
    "PnLResponse",
    "SellMatchSchema",
]
