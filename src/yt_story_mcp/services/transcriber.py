from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable

import httpx

from yt_story_mcp.config import DEFAULT_BASE_URL
from yt_story_mcp.errors import (
    SubmissionError,
    TranscriptionError,
    TranscriptionTimeoutError,
    UploadError,
)
from yt_story_mcp.types import TranscriptionJob, TranscriptionOptions

logger = logging.getLogger(__name__)


def _json_object(response: httpx.Response) -> dict[str, Any]:
    try:
        payload = response.json()
    except ValueError as exc:
        raise ValueError(f"invalid JSON in response: {response.text[:400]}") from exc
    if not isinstance(payload, dict):
        raise ValueError("response body is not a JSON object")
    return payload


class AssemblyAIEndpoint:
    def __init__(self, http: httpx.AsyncClient, api_key: str, base_url: str = DEFAULT_BASE_URL) -> None:
        self.http = http
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")

    @property
    def headers(self) -> dict[str, str]:
        return {"authorization": self.api_key}


class TranscriptionClient(AssemblyAIEndpoint):
    async def upload(self, payload: bytes) -> str:
        if not payload:
            raise UploadError("audio payload is empty")

        headers = {
            **self.headers,
            "content-type": "application/octet-stream",
            "content-length": str(len(payload)),
        }
        try:
            response = await self.http.post(f"{self.base_url}/upload", headers=headers, content=payload)
        except httpx.HTTPError as exc:
            raise UploadError(f"request error: {exc}") from exc

        if response.status_code >= 400:
            raise UploadError(f"AssemblyAI upload failed ({response.status_code}): {response.text[:400]}")

        try:
            body = _json_object(response)
        except ValueError as exc:
            raise UploadError(str(exc)) from exc

        uploaded = body.get("upload_url")
        if not uploaded:
            raise UploadError("AssemblyAI upload response missing upload_url")
        logger.info("Uploaded %d audio bytes", len(payload))
        return str(uploaded)


class JobSubmitter(AssemblyAIEndpoint):
    async def submit(self, upload_ref: str, options: TranscriptionOptions) -> str:
        try:
            response = await self.http.post(
                f"{self.base_url}/transcript",
                headers=self.headers,
                json=options.to_payload(upload_ref),
            )
        except httpx.HTTPError as exc:
            raise SubmissionError(f"request error: {exc}") from exc

        if response.status_code >= 400:
            raise SubmissionError(
                f"AssemblyAI transcript create failed ({response.status_code}): {response.text[:400]}"
            )

        try:
            body = _json_object(response)
        except ValueError as exc:
            raise SubmissionError(str(exc)) from exc

        transcript_id = body.get("id")
        if not transcript_id:
            raise SubmissionError("AssemblyAI transcript response missing id")
        logger.info("Created transcript job %s", transcript_id)
        return str(transcript_id)


class JobPoller(AssemblyAIEndpoint):
    """Polls a transcript job at a fixed interval until it reaches a terminal state."""

    def __init__(
        self,
        http: httpx.AsyncClient,
        api_key: str,
        base_url: str = DEFAULT_BASE_URL,
        *,
        interval_seconds: float = 4.0,
        max_attempts: int = 30,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        super().__init__(http, api_key, base_url)
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.interval_seconds = interval_seconds
        self.max_attempts = max_attempts
        self._sleep = sleep

    async def fetch_job(self, job_id: str) -> TranscriptionJob:
        try:
            response = await self.http.get(f"{self.base_url}/transcript/{job_id}", headers=self.headers)
        except httpx.HTTPError as exc:
            raise TranscriptionError(f"request error: {exc}") from exc

        if response.status_code >= 400:
            raise TranscriptionError(
                f"AssemblyAI transcript poll failed ({response.status_code}): {response.text[:400]}"
            )

        try:
            return TranscriptionJob.from_payload(_json_object(response), job_id)
        except ValueError as exc:
            raise TranscriptionError(str(exc)) from exc

    async def await_completion(self, job_id: str) -> str:
        for attempt in range(1, self.max_attempts + 1):
            job = await self.fetch_job(job_id)
            logger.debug("Transcript %s status %s (attempt %d/%d)", job_id, job.status, attempt, self.max_attempts)

            if job.status == "completed":
                if not (job.text or "").strip():
                    raise TranscriptionError("AssemblyAI returned an empty transcript")
                return job.text
            if job.status == "error":
                raise TranscriptionError(job.error or "AssemblyAI reported error status")

            if attempt < self.max_attempts:
                await self._sleep(self.interval_seconds)

        raise TranscriptionTimeoutError(
            f"transcript {job_id} not finished after {self.max_attempts} status checks"
        )
