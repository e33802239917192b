"""Service layer for CultoClips."""

from cultoclips.services.job_store import (
    JobStoreService,
    JobSubscription,
    create_job_store_service,
)
from cultoclips.services.processing import ProcessingService, create_processing_service
from cultoclips.services.session import ClipSession, create_clip_session

__all__ = [
    "JobStoreService",
    "JobSubscription",
    "create_job_store_service",
    "ProcessingService",
    "create_processing_service",
    "ClipSession",
    "create_clip_session",
]
