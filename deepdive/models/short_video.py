"""Cached short video observations."""
from datetime import datetime

from sqlalchemy import BigInteger, Column, DateTime, Integer, String, Text

from deepdive.database import Base


class ShortVideo(Base):
    """One sync observation of a short; a video may appear many times."""

    __tablename__ = "shorts_videos"

    id = Column(Integer, primary_key=True, autoincrement=True)
    video_id = Column(String(32), nullable=False, index=True)
    channel_id = Column(String(64), nullable=False, index=True)
    title = Column(Text, nullable=True)
    view_count = Column(BigInteger, default=0, nullable=False)
    duration_seconds = Column(Integer, nullable=True)
    collected_at = Column(DateTime, default=datetime.utcnow, nullable=False)
