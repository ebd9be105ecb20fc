"""Pydantic schemas for API request/response and model outputs."""
from deepdive.schemas.run import (
    CallLogSchema,
    ChannelEntrySchema,
    RunDetail,
    RunListItem,
    RunSchema,
    TriageFilters,
)
from deepdive.schemas.progress import ProgressEvent
from deepdive.schemas.settings import AppSettings, DeepAnalysisSettings

__all__ = [
    "CallLogSchema",
    "ChannelEntrySchema",
    "RunDetail",
    "RunListItem",
    "RunSchema",
    "TriageFilters",
    "ProgressEvent",
    "AppSettings",
    "DeepAnalysisSettings",
]
