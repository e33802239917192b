"""Pydantic data models for CultoClips."""

from cultoclips.models.clip import Clip
from cultoclips.models.job import Job, JobState
from cultoclips.models.view import JobView

__all__ = [
    "Clip",
    "Job",
    "JobState",
    "JobView",
]
