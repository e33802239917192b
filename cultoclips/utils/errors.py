"""Custom exception classes for CultoClips."""


class CultoClipsError(Exception):
    """Base exception for all application errors."""

    pass


class JobStoreError(CultoClipsError):
    """Errors from the job store."""

    pass


class JobCreationError(JobStoreError):
    """The job store rejected a job insert."""

    pass


class ClipFetchError(JobStoreError):
    """Clips for a finished job could not be read."""

    pass


class SchemaMismatchError(JobStoreError):
    """A row from the store does not have the expected shape."""

    def __init__(self, table: str, message: str) -> None:
        self.table = table
        super().__init__(f"Unexpected {table} row: {message}")


class SubscriptionError(JobStoreError):
    """Realtime subscription could not be opened."""

    pass


class ProcessingServiceError(CultoClipsError):
    """Processing service rejected or failed to receive a job."""

    def __init__(self, status_code: int, message: str) -> None:
        self.status_code = status_code
        super().__init__(f"Processing service error {status_code}: {message}")
