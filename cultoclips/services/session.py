"""Job lifecycle session: submit a video, follow its job, collect its clips."""

import asyncio
import logging
from typing import Any, Callable, Coroutine, Optional

from cultoclips.config import DEFAULT_PROCESSING_ERROR
from cultoclips.models.job import Job, JobState
from cultoclips.models.view import JobView
from cultoclips.services.job_store import JobStoreService, JobSubscription
from cultoclips.services.processing import ProcessingService
from cultoclips.utils.errors import (
    ClipFetchError,
    CultoClipsError,
    JobCreationError,
    JobStoreError,
    ProcessingServiceError,
    SubscriptionError,
)

logger = logging.getLogger(__name__)

ViewListener = Callable[[JobView], None]


class ClipSession:
    """
    Coordinates a single current job for one caller.

    The session owns the realtime subscription of its current job and every
    background task it starts. Construct one per caller and close it (or use
    ``async with``) to release the subscription.
    """

    def __init__(
        self,
        job_store: JobStoreService,
        processing: ProcessingService,
        processing_error_message: str = DEFAULT_PROCESSING_ERROR,
        resync_delay: float = 0.0,
        resync_attempts: int = 3,
        resync_base_delay: float = 1.0,
        surface_background_errors: bool = False,
    ) -> None:
        """
        Initialize the ClipSession.

        Args:
            job_store: Store used to create jobs, read clips and subscribe
            processing: Client for the processing endpoint
            processing_error_message: Message shown when a job ends in error
            resync_delay: Seconds without a live notification before the job
                row is read directly; 0 disables the fallback
            resync_attempts: Attempts per direct read
            resync_base_delay: Backoff base for direct reads
            surface_background_errors: Also copy trigger and clip fetch
                failures into ``last_error``
        """
        self.job_store = job_store
        self.processing = processing
        self.processing_error_message = processing_error_message
        self.resync_delay = resync_delay
        self.surface_background_errors = surface_background_errors
        if resync_attempts < 1:
            raise ValueError("resync_attempts must be at least 1")
        self.resync_attempts = resync_attempts
        self.resync_base_delay = resync_base_delay

        self._view = JobView()
        self._listeners: list[ViewListener] = []
        self._subscription: Optional[JobSubscription] = None
        self._tasks: set[asyncio.Task] = set()
        self._watch_task: Optional[asyncio.Task] = None
        self._live_updates = 0
        self._settled = asyncio.Event()
        self._settled.set()
        self._closed = False

    # ==================== OBSERVABLE STATE ====================

    @property
    def view(self) -> JobView:
        return self._view

    def add_listener(self, listener: ViewListener) -> Callable[[], None]:
        """
        Register a callback for every view change.

        Returns:
            A function that removes the listener
        """
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def _set_view(self, **changes: Any) -> None:
        view = self._view.model_copy(update=changes)
        if view == self._view:
            return
        self._view = view

        if view.in_progress:
            self._settled.clear()
        else:
            self._settled.set()

        for listener in list(self._listeners):
            try:
                listener(view)
            except Exception:
                logger.exception("View listener raised")

    def _is_current(self, job_id: str) -> bool:
        current = self._view.current_job
        return current is not None and current.id == job_id

    # ==================== SUBMISSION ====================

    async def submit(self, url: str) -> JobView:
        """
        Create a job for ``url`` and start following it.

        Empty URLs and submissions while a job is in progress are ignored.
        A store failure is reported through ``last_error``.

        Args:
            url: Source video URL

        Returns:
            The view after the job was created (or the submission failed)
        """
        if self._closed:
            raise CultoClipsError("Session is closed")
        if not url:
            return self._view
        if self._view.in_progress:
            logger.info("Ignoring submit while a job is in progress")
            return self._view

        # Claim the session before the first await so a concurrent submit
        # sees in_progress and backs off
        previous = self._detach_current()
        self._set_view(
            current_job=None,
            clips=(),
            in_progress=True,
            last_error=None,
            background_error=None,
        )
        await self._release(*previous)

        try:
            job = await self.job_store.create_job(url)
        except JobCreationError as e:
            logger.error(f"Failed to create job for {url}: {e}")
            self._set_view(last_error=str(e), in_progress=False)
            return self._view

        if self._closed:
            logger.info(f"Session closed before job {job.id} was triggered")
            self._set_view(in_progress=False)
            return self._view

        self._live_updates = 0
        self._set_view(current_job=job)

        # Subscribe before triggering so the first transition is not missed
        await self._open_subscription(job)
        if self._closed:
            logger.info(f"Session closed before job {job.id} was triggered")
            self._set_view(in_progress=False)
            return self._view

        self._spawn(self._trigger(job))
        if self.resync_delay > 0:
            self._watch_task = asyncio.create_task(self._watch(job.id))

        return self._view

    async def _open_subscription(self, job: Job) -> None:
        try:
            subscription = await self.job_store.subscribe_job_changes(
                job.id,
                on_update=self._on_notification,
                on_error=lambda e: self._record_background_error(job.id, str(e)),
            )
        except SubscriptionError as e:
            logger.error(f"No live updates for job {job.id}: {e}")
            self._record_background_error(job.id, str(e))
            return

        if self._closed or not self._is_current(job.id):
            await subscription.unsubscribe()
            return
        self._subscription = subscription

    async def _trigger(self, job: Job) -> None:
        try:
            await self.processing.trigger(job.id, job.source_url)
        except ProcessingServiceError as e:
            logger.error(f"Failed to trigger processing for job {job.id}: {e}")
            self._record_background_error(job.id, str(e))

    # ==================== NOTIFICATIONS ====================

    def _on_notification(self, job: Job) -> None:
        if self._is_current(job.id):
            self._live_updates += 1
        self.apply_update(job)

    def apply_update(self, job: Job) -> None:
        """
        Apply a job snapshot to the view.

        Snapshots for any job other than the current one are dropped, and an
        identical snapshot is a no-op. Entering DONE fetches the clips once;
        entering ERROR records the processing error message.
        """
        current = self._view.current_job
        if current is None or current.id != job.id:
            logger.debug(f"Ignoring update for stale job {job.id}")
            return
        if job == current:
            return

        entering = job.status if job.status != current.status else None
        logger.info(f"Job {job.id} is {job.status.value}")

        if entering is JobState.DONE:
            self._set_view(current_job=job, in_progress=False)
            self._spawn(self._fetch_clips(job.id))
        elif entering is JobState.ERROR:
            self._set_view(
                current_job=job,
                in_progress=False,
                last_error=self.processing_error_message,
            )
        else:
            self._set_view(current_job=job)

    async def _fetch_clips(self, job_id: str) -> None:
        try:
            clips = await self.job_store.list_clips(job_id)
        except ClipFetchError as e:
            logger.error(f"Error fetching clips: {e}")
            self._record_background_error(job_id, str(e))
            return

        if not self._is_current(job_id):
            return
        self._set_view(clips=tuple(clips))

    def _record_background_error(self, job_id: str, message: str) -> None:
        if not self._is_current(job_id):
            return
        if self.surface_background_errors:
            self._set_view(background_error=message, last_error=message, in_progress=False)
        else:
            self._set_view(background_error=message)

    async def _watch(self, job_id: str) -> None:
        """Read the job row directly whenever live updates go quiet."""
        seen = 0
        while True:
            await asyncio.sleep(self.resync_delay)
            current = self._view.current_job
            if current is None or current.id != job_id or current.status.is_terminal:
                return
            if self._live_updates != seen:
                seen = self._live_updates
                continue

            logger.info(f"No live update for job {job_id} in {self.resync_delay}s, resyncing")
            try:
                job = await self._read_job(job_id)
            except JobStoreError as e:
                logger.warning(f"Resync of job {job_id} failed: {e}")
                continue
            if job is not None:
                self.apply_update(job)

    async def _read_job(self, job_id: str) -> Optional[Job]:
        """
        Read the job row, backing off exponentially between failed attempts.

        Raises:
            JobStoreError: The last failure once every attempt has failed
        """
        for attempt in range(self.resync_attempts):
            try:
                return await self.job_store.get_job(job_id)
            except JobStoreError as e:
                if attempt == self.resync_attempts - 1:
                    raise
                delay = self.resync_base_delay * (2**attempt)
                logger.warning(
                    f"Read of job {job_id} failed ({attempt + 1}/{self.resync_attempts}): {e}. "
                    f"Retrying in {delay}s..."
                )
                await asyncio.sleep(delay)
        return None

    # ==================== TASKS & TEARDOWN ====================

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def _detach_current(self) -> tuple[Optional[asyncio.Task], Optional[JobSubscription]]:
        detached = (self._watch_task, self._subscription)
        self._watch_task = None
        self._subscription = None
        return detached

    async def _release(
        self,
        watch_task: Optional[asyncio.Task],
        subscription: Optional[JobSubscription],
    ) -> None:
        if watch_task is not None:
            watch_task.cancel()
            await asyncio.gather(watch_task, return_exceptions=True)
        if subscription is not None:
            await subscription.unsubscribe()

    async def wait_idle(self) -> None:
        """Wait for outstanding trigger and clip fetch tasks."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def wait_until_settled(self, timeout: Optional[float] = None) -> JobView:
        """
        Wait until no job is in progress and background work has finished.

        Raises:
            asyncio.TimeoutError: If ``timeout`` elapses first
        """
        await asyncio.wait_for(self._settled.wait(), timeout)
        await self.wait_idle()
        return self._view

    async def close(self) -> None:
        """Release the subscription and cancel background work."""
        if self._closed:
            return
        self._closed = True
        await self._release(*self._detach_current())

        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        logger.debug("Session closed")

    async def __aenter__(self) -> "ClipSession":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()


async def create_clip_session() -> ClipSession:
    """
    Create a ClipSession wired to the configured store and processing service.

    Returns:
        Configured ClipSession instance
    """
    from cultoclips.config import get_settings
    from cultoclips.services.job_store import create_job_store_service
    from cultoclips.services.processing import create_processing_service

    settings = get_settings()
    job_store = await create_job_store_service()
    return ClipSession(
        job_store=job_store,
        processing=create_processing_service(),
        processing_error_message=settings.processing_error_message,
        resync_delay=settings.resync_delay_seconds,
        resync_attempts=settings.max_retry_attempts,
        resync_base_delay=settings.base_delay_seconds,
        surface_background_errors=settings.surface_background_errors,
    )
