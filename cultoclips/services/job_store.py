"""Job store service for Supabase tables and realtime notifications."""

import logging
from typing import Any, Callable, List, Optional

from pydantic import ValidationError

from cultoclips.models.clip import Clip
from cultoclips.models.job import Job, JobState
from cultoclips.utils.errors import (
    ClipFetchError,
    JobCreationError,
    JobStoreError,
    SchemaMismatchError,
    SubscriptionError,
)

logger = logging.getLogger(__name__)

JOBS_TABLE = "jobs"
CLIPS_TABLE = "clips"


def _error_message(exc: Exception) -> str:
    """Prefer the store's own message over the exception repr."""
    message = getattr(exc, "message", None)
    if isinstance(message, str) and message:
        return message
    return str(exc)


def parse_job(row: Any) -> Job:
    """
    Validate a ``jobs`` row.

    Raises:
        SchemaMismatchError: If the row is not a valid job
    """
    if not isinstance(row, dict):
        raise SchemaMismatchError(JOBS_TABLE, f"expected an object, got {type(row).__name__}")
    try:
        return Job.model_validate(row)
    except ValidationError as e:
        raise SchemaMismatchError(JOBS_TABLE, str(e))


def parse_clip(row: Any) -> Clip:
    """
    Validate a ``clips`` row.

    Raises:
        SchemaMismatchError: If the row is not a valid clip
    """
    if not isinstance(row, dict):
        raise SchemaMismatchError(CLIPS_TABLE, f"expected an object, got {type(row).__name__}")
    try:
        return Clip.model_validate(row)
    except ValidationError as e:
        raise SchemaMismatchError(CLIPS_TABLE, str(e))


def extract_record(payload: Any) -> Any:
    """Pull the updated row out of a realtime ``postgres_changes`` payload."""
    if not isinstance(payload, dict):
        return payload
    data = payload.get("data")
    if isinstance(data, dict) and "record" in data:
        return data["record"]
    for key in ("record", "new"):
        if key in payload:
            return payload[key]
    return payload


class JobSubscription:
    """Handle for a live subscription to one job row."""

    def __init__(self, supabase_client: Any, channel: Any, job_id: str) -> None:
        self.supabase = supabase_client
        self.channel = channel
        self.job_id = job_id
        self.active = True

    async def unsubscribe(self) -> None:
        """Release the realtime channel. Safe to call more than once."""
        if not self.active:
            return
        self.active = False
        try:
            await self.supabase.remove_channel(self.channel)
            logger.debug(f"Unsubscribed from job {self.job_id}")
        except Exception as e:
            logger.warning(f"Failed to release channel for job {self.job_id}: {e}")


class JobStoreService:
    """Service for the ``jobs`` and ``clips`` tables in Supabase."""

    def __init__(self, supabase_client: Any, schema: str = "public") -> None:
        """
        Initialize the JobStoreService.

        Args:
            supabase_client: Async Supabase client instance
            schema: Postgres schema holding the tables
        """
        self.supabase = supabase_client
        self.schema = schema

    # ==================== JOBS ====================

    async def create_job(self, source_url: str) -> Job:
        """
        Insert a pending job for a source video.

        Args:
            source_url: URL of the video to clip

        Returns:
            The created job, including its generated id

        Raises:
            JobCreationError: If the store rejects the insert
        """
        try:
            result = (
                await self.supabase.table(JOBS_TABLE)
                .insert({"youtube_url": source_url, "status": JobState.PENDING.value})
                .execute()
            )
        except Exception as e:
            raise JobCreationError(_error_message(e))

        if not result.data:
            raise JobCreationError("Failed to insert job into database")

        try:
            job = parse_job(result.data[0])
        except SchemaMismatchError as e:
            raise JobCreationError(str(e))

        logger.info(f"Created job {job.id} for {source_url}")
        return job

    async def get_job(self, job_id: str) -> Optional[Job]:
        """
        Read a job row directly.

        Args:
            job_id: The job ID to retrieve

        Returns:
            Job if found, None otherwise

        Raises:
            JobStoreError: If the read fails or the row is malformed
        """
        try:
            result = await self.supabase.table(JOBS_TABLE).select("*").eq("id", job_id).execute()
        except Exception as e:
            raise JobStoreError(f"Failed to get job {job_id}: {_error_message(e)}")

        if not result.data:
            return None
        return parse_job(result.data[0])

    # ==================== CLIPS ====================

    async def list_clips(self, job_id: str) -> List[Clip]:
        """
        Fetch every clip of a job, in store order.

        Args:
            job_id: Job ID to filter by

        Returns:
            List of clips, possibly empty

        Raises:
            ClipFetchError: If the read fails or a row is malformed
        """
        try:
            result = (
                await self.supabase.table(CLIPS_TABLE).select("*").eq("job_id", job_id).execute()
            )
            clips = [parse_clip(row) for row in result.data or []]
        except Exception as e:
            raise ClipFetchError(f"Failed to fetch clips for job {job_id}: {_error_message(e)}")

        logger.info(f"Fetched {len(clips)} clips for job {job_id}")
        return clips

    # ==================== REALTIME ====================

    async def subscribe_job_changes(
        self,
        job_id: str,
        on_update: Callable[[Job], None],
        on_error: Optional[Callable[[Exception], None]] = None,
    ) -> JobSubscription:
        """
        Open a realtime subscription to UPDATE events on one job row.

        Args:
            job_id: Job ID to watch
            on_update: Called with each validated job snapshot
            on_error: Called with a SchemaMismatchError for malformed payloads

        Returns:
            Subscription handle; call ``unsubscribe()`` to release it

        Raises:
            SubscriptionError: If the channel cannot be opened
        """
        channel = self.supabase.channel(f"job-updates-{job_id}")
        subscription = JobSubscription(self.supabase, channel, job_id)

        def handle_change(payload: Any) -> None:
            if not subscription.active:
                logger.debug(f"Dropping notification for released job {job_id}")
                return
            try:
                job = parse_job(extract_record(payload))
            except SchemaMismatchError as e:
                logger.error(f"Rejected notification for job {job_id}: {e}")
                if on_error is not None:
                    on_error(e)
                return
            on_update(job)

        try:
            channel.on_postgres_changes(
                "UPDATE",
                callback=handle_change,
                table=JOBS_TABLE,
                schema=self.schema,
                filter=f"id=eq.{job_id}",
            )
            await channel.subscribe()
        except Exception as e:
            await subscription.unsubscribe()
            raise SubscriptionError(f"Failed to subscribe to job {job_id}: {_error_message(e)}")

        logger.debug(f"Subscribed to job {job_id}")
        return subscription


# Factory function for creating JobStoreService with settings
async def create_job_store_service() -> JobStoreService:
    """
    Create a JobStoreService instance using application settings.

    Returns:
        Configured JobStoreService instance
    """
    from supabase import acreate_client

    from cultoclips.config import get_settings

    settings = get_settings()
    supabase_client = await acreate_client(settings.supabase_url, settings.supabase_key)
    return JobStoreService(supabase_client=supabase_client)
