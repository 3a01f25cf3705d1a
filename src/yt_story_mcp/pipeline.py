from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Sequence, TypeVar

import httpx

from yt_story_mcp.config import Settings
from yt_story_mcp.errors import (
    AcquisitionError,
    ConfigurationError,
    InvalidRequestError,
    PipelineError,
    SubmissionError,
    TranscriptionError,
    TranscriptionTimeoutError,
    UploadError,
)
from yt_story_mcp.services.composer import DEFAULT_PRODUCT, compose
from yt_story_mcp.services.fetcher import AcquisitionStrategy, AudioFetcher, build_strategies
from yt_story_mcp.services.transcriber import JobPoller, JobSubmitter, TranscriptionClient
from yt_story_mcp.types import StoryResult, TranscriptionOptions
from yt_story_mcp.utils.url import video_id_from

logger = logging.getLogger(__name__)

T = TypeVar("T")


class PipelineOrchestrator:
    """Runs acquisition, upload, submission and polling for one video, in order."""

    def __init__(
        self,
        *,
        fetcher: AudioFetcher,
        uploader: TranscriptionClient,
        submitter: JobSubmitter,
        poller: JobPoller,
        options: TranscriptionOptions | None = None,
        product: str = DEFAULT_PRODUCT,
        max_duration_seconds: float = 600.0,
    ) -> None:
        self.fetcher = fetcher
        self.uploader = uploader
        self.submitter = submitter
        self.poller = poller
        self.options = options or TranscriptionOptions()
        self.product = product
        self.max_duration_seconds = max_duration_seconds
        self.current_stage = "request"

    async def run(self, video_id: str) -> StoryResult:
        if not video_id or not str(video_id).strip():
            raise InvalidRequestError("youtubeId is required")
        resolved_id = video_id_from(str(video_id))
        if not resolved_id:
            raise InvalidRequestError(f"could not read a video id from '{video_id}'")

        logger.info("Starting story pipeline for %s", resolved_id)
        try:
            transcript_id, transcript = await asyncio.wait_for(
                self._transcribe(resolved_id),
                timeout=self.max_duration_seconds,
            )
        except asyncio.TimeoutError as exc:
            logger.error("Pipeline for %s exceeded %ss during %s", resolved_id, self.max_duration_seconds, self.current_stage)
            raise TranscriptionTimeoutError(
                f"pipeline exceeded {self.max_duration_seconds:g}s",
                stage=self.current_stage,
            ) from exc

        bundle = compose(transcript, self.product)
        logger.info("Finished story pipeline for %s (transcript %s)", resolved_id, transcript_id)
        return StoryResult(transcript=transcript, transcript_id=transcript_id, bundle=bundle)

    async def _transcribe(self, video_id: str) -> tuple[str, str]:
        payload = await self._stage("acquisition", AcquisitionError, self.fetcher.fetch_audio(video_id))
        upload_ref = await self._stage("upload", UploadError, self.uploader.upload(payload))
        transcript_id = await self._stage(
            "submission",
            SubmissionError,
            self.submitter.submit(upload_ref, self.options),
        )
        text = await self._stage("polling", TranscriptionError, self.poller.await_completion(transcript_id))
        return transcript_id, text

    async def _stage(self, stage: str, error_cls: type[PipelineError], step: Awaitable[T]) -> T:
        self.current_stage = stage
        try:
            return await step
        except PipelineError as exc:
            logger.error("Stage %s failed: %s", exc.stage, exc)
            raise
        except Exception as exc:  # pylint: disable=broad-except
            logger.exception("Unexpected failure during %s", stage)
            raise error_cls(str(exc).strip() or exc.__class__.__name__) from exc


def build_orchestrator(
    settings: Settings,
    http: httpx.AsyncClient,
    *,
    strategies: Sequence[AcquisitionStrategy] | None = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> PipelineOrchestrator:
    if not settings.assemblyai_api_key:
        raise ConfigurationError("ASSEMBLYAI_API_KEY is not set")

    if strategies is None:
        strategies = build_strategies(
            settings.audio_strategies,
            http=http,
            ytdlp_path=settings.ytdlp_path,
            user_agent=settings.user_agent,
            accept_language=settings.accept_language,
            cookie=settings.youtube_cookie,
        )

    api_key = settings.assemblyai_api_key
    base_url = settings.assemblyai_base_url
    return PipelineOrchestrator(
        fetcher=AudioFetcher(strategies),
        uploader=TranscriptionClient(http, api_key, base_url),
        submitter=JobSubmitter(http, api_key, base_url),
        poller=JobPoller(
            http,
            api_key,
            base_url,
            interval_seconds=settings.poll_interval_seconds,
            max_attempts=settings.poll_max_attempts,
            sleep=sleep,
        ),
        options=TranscriptionOptions(language_code=settings.language_code),
        product=settings.product_name,
        max_duration_seconds=settings.max_duration_seconds,
    )
