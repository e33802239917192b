"""Tests for the Supabase job store service.

Covers job creation, clip retrieval, direct reads and realtime subscriptions,
including rejection of malformed rows at the store boundary.
"""

import asyncio
from typing import Any, List

import pytest
from hypothesis import given, settings, strategies as st

from cultoclips.models.job import Job, JobState
from cultoclips.services.job_store import (
    JobStoreService,
    extract_record,
    parse_clip,
    parse_job,
)
from cultoclips.utils.errors import (
    ClipFetchError,
    JobCreationError,
    JobStoreError,
    SchemaMismatchError,
    SubscriptionError,
)
from tests.mock_supabase import MockSupabaseClient

non_empty_urls = st.text(min_size=1, max_size=100)


class APIError(Exception):
    """Mimics the postgrest error, which carries a ``message`` attribute."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__({"message": message, "code": "PGRST000"})


class TestCreateJob:
    @settings(max_examples=50, deadline=None)
    @given(url=non_empty_urls)
    def test_inserts_one_pending_row(self, url: str) -> None:
        """Each creation inserts exactly one pending row for the URL."""
        client = MockSupabaseClient()
        store = JobStoreService(supabase_client=client)

        job = asyncio.run(store.create_job(url))

        inserts = client.calls_for("jobs", "insert")
        assert inserts == [{"youtube_url": url, "status": "pending"}]
        assert job.id == "J1"
        assert job.source_url == url
        assert job.status is JobState.PENDING

    @pytest.mark.asyncio
    async def test_store_failure_keeps_store_message(
        self, supabase_client: MockSupabaseClient, job_store: JobStoreService
    ) -> None:
        supabase_client.failures[("jobs", "insert")] = Exception("network error")

        with pytest.raises(JobCreationError) as exc_info:
            await job_store.create_job("https://youtu.be/abc")

        assert str(exc_info.value) == "network error"

    @pytest.mark.asyncio
    async def test_prefers_api_error_message(
        self, supabase_client: MockSupabaseClient, job_store: JobStoreService
    ) -> None:
        supabase_client.failures[("jobs", "insert")] = APIError("permission denied for table jobs")

        with pytest.raises(JobCreationError, match="^permission denied for table jobs$"):
            await job_store.create_job("https://youtu.be/abc")

    @pytest.mark.asyncio
    async def test_empty_insert_result(self) -> None:
        class EmptyInsertClient(MockSupabaseClient):
            def table(self, name: str) -> Any:
                query = super().table(name)

                async def execute() -> Any:
                    from tests.mock_supabase import MockSupabaseResponse

                    return MockSupabaseResponse([])

                query.execute = execute  # type: ignore[method-assign]
                return query

        store = JobStoreService(supabase_client=EmptyInsertClient())
        with pytest.raises(JobCreationError, match="Failed to insert job"):
            await store.create_job("https://youtu.be/abc")


class TestGetJob:
    @pytest.mark.asyncio
    async def test_reads_existing_job(
        self, supabase_client: MockSupabaseClient, job_store: JobStoreService
    ) -> None:
        created = await job_store.create_job("https://youtu.be/abc")
        supabase_client.set_job_status(created.id, "processing", notify=False)

        job = await job_store.get_job(created.id)

        assert job is not None
        assert job.status is JobState.PROCESSING

    @pytest.mark.asyncio
    async def test_missing_job_is_none(self, job_store: JobStoreService) -> None:
        assert await job_store.get_job("missing") is None

    @pytest.mark.asyncio
    async def test_read_failure_raises(
        self, supabase_client: MockSupabaseClient, job_store: JobStoreService
    ) -> None:
        supabase_client.failures[("jobs", "select")] = Exception("timeout")

        with pytest.raises(JobStoreError, match="timeout"):
            await job_store.get_job("J1")


class TestListClips:
    @pytest.mark.asyncio
    async def test_returns_only_clips_of_job(
        self, supabase_client: MockSupabaseClient, job_store: JobStoreService
    ) -> None:
        supabase_client.add_clip("J1", "Hook 1")
        supabase_client.add_clip("J2", "Other job")
        supabase_client.add_clip("J1", "Hook 2")

        clips = await job_store.list_clips("J1")

        assert [c.title for c in clips] == ["Hook 1", "Hook 2"]
        assert all(c.job_id == "J1" for c in clips)

    @pytest.mark.asyncio
    async def test_no_clips(self, job_store: JobStoreService) -> None:
        assert await job_store.list_clips("J1") == []

    @pytest.mark.asyncio
    async def test_fetch_failure_raises(
        self, supabase_client: MockSupabaseClient, job_store: JobStoreService
    ) -> None:
        supabase_client.failures[("clips", "select")] = Exception("connection reset")

        with pytest.raises(ClipFetchError, match="connection reset"):
            await job_store.list_clips("J1")

    @pytest.mark.asyncio
    async def test_malformed_row_raises(
        self, supabase_client: MockSupabaseClient, job_store: JobStoreService
    ) -> None:
        supabase_client.tables["clips"] = [{"id": "C1", "job_id": "J1", "title": "No url"}]

        with pytest.raises(ClipFetchError, match="Unexpected clips row"):
            await job_store.list_clips("J1")


class TestRowValidation:
    def test_parse_job_rejects_non_object(self) -> None:
        with pytest.raises(SchemaMismatchError, match="expected an object"):
            parse_job(["J1", "pending"])

    def test_parse_clip_rejects_wrong_types(self, sample_clip_row: dict) -> None:
        sample_clip_row["title"] = {"text": "Hook 1"}
        with pytest.raises(SchemaMismatchError) as exc_info:
            parse_clip(sample_clip_row)
        assert exc_info.value.table == "clips"

    @pytest.mark.parametrize(
        "payload",
        [
            {"data": {"type": "UPDATE", "record": {"id": "J1"}}},
            {"record": {"id": "J1"}},
            {"new": {"id": "J1"}},
        ],
    )
    def test_extract_record_shapes(self, payload: dict) -> None:
        assert extract_record(payload) == {"id": "J1"}


class TestSubscription:
    @pytest.mark.asyncio
    async def test_subscribes_to_updates_of_one_row(
        self, supabase_client: MockSupabaseClient, job_store: JobStoreService
    ) -> None:
        received: List[Job] = []
        job = await job_store.create_job("https://youtu.be/abc")

        await job_store.subscribe_job_changes(job.id, received.append)

        channel = supabase_client.channels[0]
        assert channel.subscribed
        assert channel.filters == [
            {"event": "UPDATE", "table": "jobs", "schema": "public", "filter": "id=eq.J1"}
        ]

        supabase_client.set_job_status(job.id, "processing")

        assert len(received) == 1
        assert received[0].status is JobState.PROCESSING

    @pytest.mark.asyncio
    async def test_unsubscribe_is_idempotent_and_stops_delivery(
        self, supabase_client: MockSupabaseClient, job_store: JobStoreService, sample_job_row: dict
    ) -> None:
        received: List[Job] = []
        subscription = await job_store.subscribe_job_changes("J1", received.append)

        await subscription.unsubscribe()
        await subscription.unsubscribe()

        assert supabase_client.events == [
            ("subscribe", "job-updates-J1"),
            ("remove", "job-updates-J1"),
        ]
        # A delivery racing the release is dropped
        supabase_client.channels[0].deliver(sample_job_row)
        assert received == []

    @pytest.mark.asyncio
    async def test_malformed_notification_reported(
        self, supabase_client: MockSupabaseClient, job_store: JobStoreService
    ) -> None:
        received: List[Job] = []
        errors: List[Exception] = []
        await job_store.subscribe_job_changes("J1", received.append, on_error=errors.append)

        supabase_client.channels[0].deliver({"id": "J1", "status": "exploded"})

        assert received == []
        assert len(errors) == 1
        assert isinstance(errors[0], SchemaMismatchError)

    @pytest.mark.asyncio
    async def test_subscribe_failure_releases_channel(
        self, supabase_client: MockSupabaseClient, job_store: JobStoreService
    ) -> None:
        supabase_client.subscribe_error = Exception("socket closed")

        with pytest.raises(SubscriptionError, match="socket closed"):
            await job_store.subscribe_job_changes("J1", lambda job: None)

        assert supabase_client.events == [("remove", "job-updates-J1")]
