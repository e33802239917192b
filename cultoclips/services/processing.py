"""Client for the external job processing endpoint."""

import logging
from typing import Any, Optional

import httpx

from cultoclips.utils.errors import ProcessingServiceError

logger = logging.getLogger(__name__)


class ProcessingService:
    """Notifies the processing service that a job is ready to be clipped."""

    def __init__(
        self,
        api_url: str,
        timeout: float = 30.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        """
        Initialize the ProcessingService.

        Args:
            api_url: Full URL of the process endpoint
            timeout: Request timeout in seconds
            http_client: Shared client (optional, one is created per call otherwise)
        """
        self.api_url = api_url
        self.timeout = timeout
        self.http_client = http_client

    def _build_payload(self, job_id: str, source_url: str) -> dict[str, Any]:
        return {"job_id": job_id, "youtube_url": source_url}

    async def trigger(self, job_id: str, source_url: str) -> None:
        """
        Submit a job to the processing service.

        The response body is not used beyond error reporting; progress is
        reported through the job row.

        Args:
            job_id: ID of the created job
            source_url: URL of the video to clip

        Raises:
            ProcessingServiceError: On transport failure or a non-2xx response
        """
        payload = self._build_payload(job_id, source_url)

        try:
            if self.http_client is not None:
                response = await self.http_client.post(
                    self.api_url, json=payload, timeout=self.timeout
                )
            else:
                async with httpx.AsyncClient() as client:
                    response = await client.post(self.api_url, json=payload, timeout=self.timeout)
        except httpx.HTTPError as e:
            raise ProcessingServiceError(0, f"request failed: {e}")

        if not response.is_success:
            try:
                detail = response.json()
            except ValueError:
                detail = response.text
            raise ProcessingServiceError(response.status_code, str(detail))

        logger.info(f"Triggered processing for job {job_id}")


def create_processing_service(http_client: Optional[httpx.AsyncClient] = None) -> ProcessingService:
    """
    Create a ProcessingService instance using application settings.

    Args:
        http_client: Optional shared HTTP client

    Returns:
        Configured ProcessingService instance
    """
    from cultoclips.config import get_settings

    settings = get_settings()
    return ProcessingService(
        api_url=settings.process_api_url,
        timeout=settings.process_timeout_seconds,
        http_client=http_client,
    )
