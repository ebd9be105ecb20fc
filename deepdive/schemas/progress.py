"""Progress events published while a run executes."""
from pydantic import BaseModel


class ProgressEvent(BaseModel):
    """One progress update for a run."""

    step: str
    channel_name: str | None = None
    video_id: str | None = None
    progress: int = 0
    total: int = 0
    message: str
