"""Application settings model."""
from datetime import datetime
from sqlalchemy import Column, DateTime, Integer

from deepdive.database import Base, JSONType


class AppSettings(Base):
    """Persisted application settings."""

    __tablename__ = "app_settings"

    id = Column(Integer, primary_key=True)
    settings_json = Column(JSONType, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False)
