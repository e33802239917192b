"""Read-only projection of the current job for rendering."""

from typing import Optional

from pydantic import BaseModel, ConfigDict

from cultoclips.models.clip import Clip
from cultoclips.models.job import Job


class JobView(BaseModel):
    """Snapshot of a session's current job, its clips and error state."""

    model_config = ConfigDict(frozen=True)

    current_job: Optional[Job] = None
    clips: tuple[Clip, ...] = ()
    in_progress: bool = False
    last_error: Optional[str] = None
    # Most recent failure on an asynchronous path (trigger, clip fetch)
    background_error: Optional[str] = None
