"""Candidate store models, populated by the shorts sync."""
from datetime import datetime

from sqlalchemy import BigInteger, Boolean, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from deepdive.database import Base, JSONType


class Channel(Base):
    """A discovered shorts channel."""

    __tablename__ = "shorts_channels"

    channel_id = Column(String(64), primary_key=True)
    channel_name = Column(Text, nullable=False)
    channel_url = Column(Text, nullable=True)
    subscriber_count = Column(BigInteger, default=0, nullable=False)
    total_video_count = Column(Integer, default=0, nullable=False)
    channel_creation_date = Column(DateTime, nullable=True)
    first_seen_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    analysis = relationship("ChannelAnalysis", back_populates="channel", uselist=False)


class ChannelAnalysis(Base):
    """Lightweight classification of a channel, required before triage."""

    __tablename__ = "channel_analysis"

    channel_id = Column(String(64), ForeignKey("shorts_channels.channel_id"), primary_key=True)
    status = Column(String(20), nullable=False)  # 'pending', 'done', 'error'
    category = Column(Text, nullable=True)
    niche = Column(Text, nullable=True)
    sub_niche = Column(Text, nullable=True)
    content_style = Column(Text, nullable=True)
    is_ai_generated = Column(Boolean, nullable=True)
    channel_summary = Column(Text, nullable=True)
    tags = Column(JSONType, nullable=True)

    channel = relationship("Channel", back_populates="analysis")
