"""Job Pydantic models."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class JobState(str, Enum):
    """Lifecycle states written by the processing service."""

    PENDING = "pending"
    PROCESSING = "processing"
    DONE = "done"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (JobState.DONE, JobState.ERROR)


class Job(BaseModel):
    """Snapshot of a row in the ``jobs`` table."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(min_length=1)
    # Stored in the ``youtube_url`` column
    source_url: str = Field(min_length=1, alias="youtube_url")
    status: JobState = JobState.PENDING
    created_at: datetime = Field(default_factory=datetime.utcnow)
