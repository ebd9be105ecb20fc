"""Deep analysis run model."""
from datetime import datetime
import enum

from sqlalchemy import Column, DateTime, Integer, String, Text
from sqlalchemy.orm import relationship

from deepdive.database import Base, JSONType


class RunStatus(str, enum.Enum):
    """Run status, in stage order."""

    PENDING = "pending"
    TRIAGE = "triage"
    DETAILING = "detailing"
    SYNTHESIZING = "synthesizing"
    ARTIFACT_GEN = "artifact_gen"
    DONE = "done"
    ERROR = "error"


TERMINAL_RUN_STATUSES = (RunStatus.DONE.value, RunStatus.ERROR.value)

# Non-terminal statuses in the only order a run may move through them
RUN_STAGE_ORDER = (
    RunStatus.PENDING.value,
    RunStatus.TRIAGE.value,
    RunStatus.DETAILING.value,
    RunStatus.SYNTHESIZING.value,
    RunStatus.ARTIFACT_GEN.value,
)


class Run(Base):
    """One end-to-end deep analysis execution."""

    __tablename__ = "deep_analysis_runs"

    id = Column(String(12), primary_key=True)
    status = Column(String(20), default=RunStatus.PENDING.value, nullable=False, index=True)
    channel_count = Column(Integer, default=0, nullable=False)
    filters_json = Column(JSONType, nullable=True)
    progress_json = Column(JSONType, nullable=True)
    started_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    completed_at = Column(DateTime, nullable=True)
    error = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    channels = relationship(
        "ChannelEntry",
        back_populates="run",
        order_by="ChannelEntry.priority",
    )

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_RUN_STATUSES
