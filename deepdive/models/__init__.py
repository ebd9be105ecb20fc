"""SQLAlchemy models."""
from deepdive.models.channel import Channel, ChannelAnalysis
from deepdive.models.short_video import ShortVideo
from deepdive.models.run import Run
from deepdive.models.channel_entry import ChannelEntry
from deepdive.models.storyboard import Storyboard
from deepdive.models.call_log import CallLog
from deepdive.models.app_settings import AppSettings

__all__ = [
    "Channel",
    "ChannelAnalysis",
    "ShortVideo",
    "Run",
    "ChannelEntry",
    "Storyboard",
    "CallLog",
    "AppSettings",
]
