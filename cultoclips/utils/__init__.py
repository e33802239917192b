"""Utility modules for CultoClips."""

from cultoclips.utils.errors import (
    ClipFetchError,
    CultoClipsError,
    JobCreationError,
    JobStoreError,
    ProcessingServiceError,
    SchemaMismatchError,
    SubscriptionError,
)

__all__ = [
    "CultoClipsError",
    "JobStoreError",
    "JobCreationError",
    "ClipFetchError",
    "SchemaMismatchError",
    "SubscriptionError",
    "ProcessingServiceError",
]
