"""Storyboard model (per-video extraction result)."""
from datetime import datetime
import enum

from sqlalchemy import BigInteger, Column, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import relationship

from deepdive.database import Base, JSONType


class StoryboardStatus(str, enum.Enum):
    """Storyboard outcome. Rows are insert-only."""

    DONE = "done"
    ERROR = "error"


class Storyboard(Base):
    """Structured breakdown of one short video."""

    __tablename__ = "deep_analysis_storyboards"

    id = Column(String(12), primary_key=True)
    channel_entry_id = Column(
        String(12),
        ForeignKey("deep_analysis_channels.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    video_id = Column(String(32), nullable=False)
    video_title = Column(Text, nullable=True)
    view_count = Column(BigInteger, nullable=True)
    storyboard = Column(JSONType, nullable=True)
    status = Column(String(10), nullable=False)
    error = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    channel_entry = relationship("ChannelEntry", back_populates="storyboards")
