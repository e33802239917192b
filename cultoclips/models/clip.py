"""Clip Pydantic model."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class Clip(BaseModel):
    """A rendered short belonging to a finished job."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    job_id: str = Field(min_length=1)
    title: str
    summary: str
    download_url: str = Field(min_length=1)
    created_at: datetime = Field(default_factory=datetime.utcnow)
