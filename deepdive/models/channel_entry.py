"""Channel entry model (a triage pick scoped to one run)."""
from datetime import datetime
import enum

from sqlalchemy import Column, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from deepdive.database import Base, JSONType


class EntryStatus(str, enum.Enum):
    """Channel entry status, in stage order."""

    PENDING = "pending"
    DETAILING = "detailing"
    SYNTHESIZING = "synthesizing"
    ARTIFACT_GEN = "artifact_gen"
    DONE = "done"
    ERROR = "error"


TERMINAL_ENTRY_STATUSES = (EntryStatus.DONE.value, EntryStatus.ERROR.value)


class ChannelEntry(Base):
    """A channel selected by triage for deep analysis."""

    __tablename__ = "deep_analysis_channels"

    id = Column(String(12), primary_key=True)
    run_id = Column(
        String(12),
        ForeignKey("deep_analysis_runs.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    channel_id = Column(String(64), nullable=False)
    channel_name = Column(Text, nullable=False)
    channel_url = Column(Text, nullable=True)
    priority = Column(Integer, nullable=True)
    interest_score = Column(Float, nullable=True)
    triage_reason = Column(Text, nullable=True)
    what_to_look_for = Column(Text, nullable=True)
    status = Column(String(20), default=EntryStatus.PENDING.value, nullable=False)
    synthesis = Column(JSONType, nullable=True)
    post_text = Column(Text, nullable=True)
    post_hook_category = Column(String(50), nullable=True)
    error = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Relationships
    run = relationship("Run", back_populates="channels")
    storyboards = relationship(
        "Storyboard",
        back_populates="channel_entry",
        order_by="Storyboard.created_at",
    )

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_ENTRY_STATUSES
