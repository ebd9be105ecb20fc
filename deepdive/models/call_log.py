"""Audit log of outbound model calls."""
from datetime import datetime
import enum

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text

from deepdive.database import Base


class CallStatus(str, enum.Enum):
    """Call log status. Pending rows are updated exactly once."""

    PENDING = "pending"
    DONE = "done"
    ERROR = "error"


class CallLog(Base):
    """One model call: request, response, timing and outcome."""

    __tablename__ = "deep_analysis_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    run_id = Column(
        String(12),
        ForeignKey("deep_analysis_runs.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    channel_entry_id = Column(String(12), nullable=True, index=True)  # null for triage
    step = Column(String(20), nullable=False)  # 'triage', 'detail', 'synthesis', 'artifact'
    model = Column(String(100), nullable=True)
    prompt = Column(Text, nullable=False)
    response = Column(Text, nullable=True)
    duration_ms = Column(Integer, nullable=True)
    status = Column(String(10), default=CallStatus.PENDING.value, nullable=False)
    error = Column(Text, nullable=True)
    tokens_in = Column(Integer, nullable=True)
    tokens_out = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
