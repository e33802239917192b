"""Pytest fixtures for CultoClips tests."""

import pytest

from cultoclips.services.job_store import JobStoreService
from tests.mock_supabase import MockProcessingService, MockSupabaseClient


@pytest.fixture
def supabase_client() -> MockSupabaseClient:
    """Empty in-memory Supabase client."""
    return MockSupabaseClient()


@pytest.fixture
def job_store(supabase_client: MockSupabaseClient) -> JobStoreService:
    """Job store backed by the in-memory client."""
    return JobStoreService(supabase_client=supabase_client)


@pytest.fixture
def processing() -> MockProcessingService:
    """Processing service that records triggers."""
    return MockProcessingService()


@pytest.fixture
def sample_job_row() -> dict:
    """Sample jobs row as returned by the store."""
    return {
        "id": "J1",
        "youtube_url": "https://youtu.be/abc",
        "status": "pending",
        "created_at": "2024-11-25T10:00:00+00:00",
    }


@pytest.fixture
def sample_clip_row() -> dict:
    """Sample clips row as returned by the store."""
    return {
        "id": "C1",
        "job_id": "J1",
        "title": "Hook 1",
        "summary": "The strongest opening hook.",
        "download_url": "https://cdn.example.com/J1/hook-1.mp4",
        "created_at": "2024-11-25T10:05:00+00:00",
    }
