from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Sequence

import httpx
from fastmcp import FastMCP
from mcp.types import ToolAnnotations
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from yt_story_mcp.config import Settings, load_settings
from yt_story_mcp.errors import (
    ConfigurationError,
    InvalidRequestError,
    PipelineError,
    TranscriptionTimeoutError,
)
from yt_story_mcp.pipeline import build_orchestrator
from yt_story_mcp.services.fetcher import AcquisitionStrategy

logger = logging.getLogger(__name__)

SELFTEST_AUDIO_URL = (
    "https://github.com/AssemblyAI-Examples/audio-examples/raw/main/assemblyai-tests/harvard-sentences-1.wav"
)
DEFAULT_ALLOW_HEADERS = "Content-Type, Authorization"


def error_status(exc: PipelineError) -> int:
    if isinstance(exc, InvalidRequestError):
        return 400
    if isinstance(exc, ConfigurationError):
        return 500
    if isinstance(exc, TranscriptionTimeoutError):
        return 504
    return 502


def error_body(exc: PipelineError) -> dict[str, str]:
    return {"error": exc.user_message, "stage": exc.stage}


class AppRuntime:
    def __init__(
        self,
        settings: Settings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        strategies: Sequence[AcquisitionStrategy] | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.settings = settings
        self.transport = transport
        self.strategies = strategies
        self.sleep = sleep

    def http_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.settings.http_timeout_seconds, transport=self.transport)

    async def story(self, youtube_id: str) -> dict[str, Any]:
        async with self.http_client() as http:
            orchestrator = build_orchestrator(
                self.settings,
                http,
                strategies=self.strategies,
                sleep=self.sleep,
            )
            result = await orchestrator.run(youtube_id)
        return result.to_dict()

    async def selftest(self) -> httpx.Response:
        if not self.settings.assemblyai_api_key:
            raise ConfigurationError("ASSEMBLYAI_API_KEY is not set")

        payload = {"audio_url": SELFTEST_AUDIO_URL, "language_code": "en", "punctuate": True}
        async with self.http_client() as http:
            return await http.post(
                f"{self.settings.assemblyai_base_url}/transcript",
                headers={"authorization": self.settings.assemblyai_api_key},
                json=payload,
            )


def create_app(runtime: AppRuntime) -> FastMCP:
    settings = runtime.settings
    cors = {"Access-Control-Allow-Origin": settings.cors_allow_origin}
    mcp = FastMCP(name="yt-story-mcp")

    @mcp.tool(annotations=ToolAnnotations(readOnlyHint=True, openWorldHint=True))
    async def story_from_youtube(youtube_id: str) -> dict[str, Any]:
        """Transcribe a YouTube video and build a 30 second six beat script from it.

        Args:
            youtube_id: The YouTube video id (a watch or youtu.be link also works)

        Returns:
            The transcript text, beats, timed script and prompt, or an error with its stage.
        """
        try:
            return await runtime.story(youtube_id)
        except PipelineError as exc:
            logger.warning("Story request for %s failed at %s: %s", youtube_id, exc.stage, exc)
            return error_body(exc)

    @mcp.custom_route(settings.story_path, methods=["POST"])
    async def story(request: Request) -> JSONResponse:
        try:
            body = await request.json()
        except ValueError:
            body = None
        if not isinstance(body, dict):
            exc = InvalidRequestError("body must be a JSON object with youtubeId")
            return JSONResponse(error_body(exc), status_code=400, headers=cors)

        youtube_id = str(body.get("youtubeId") or "")
        try:
            result = await runtime.story(youtube_id)
        except PipelineError as exc:
            logger.warning("Story request for %s failed at %s: %s", youtube_id, exc.stage, exc)
            return JSONResponse(error_body(exc), status_code=error_status(exc), headers=cors)
        return JSONResponse(result, headers=cors)

    @mcp.custom_route(settings.story_path, methods=["GET"])
    async def story_tip(_: Request) -> JSONResponse:
        return JSONResponse({"ok": True, "tip": "Use POST with { youtubeId }"}, headers=cors)

    @mcp.custom_route(settings.story_path, methods=["OPTIONS"])
    async def story_preflight(request: Request) -> Response:
        requested = request.headers.get("access-control-request-headers")
        return Response(
            status_code=204,
            headers={
                **cors,
                "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
                "Access-Control-Allow-Headers": requested or DEFAULT_ALLOW_HEADERS,
                "Access-Control-Max-Age": "86400",
            },
        )

    @mcp.custom_route(settings.selftest_path, methods=["GET"])
    async def selftest(_: Request) -> Response:
        try:
            response = await runtime.selftest()
        except ConfigurationError as exc:
            return JSONResponse({"ok": False, "where": "env", "error": exc.detail}, status_code=500)
        except httpx.HTTPError as exc:
            logger.warning("AssemblyAI self-test request failed: %s", exc)
            return JSONResponse({"ok": False, "where": "network", "error": str(exc)}, status_code=502)
        return Response(response.content, status_code=response.status_code, media_type="application/json")

    @mcp.custom_route(settings.health_path, methods=["GET"])
    async def health(_: Request) -> JSONResponse:
        return JSONResponse(
            {
                "ok": True,
                "credential_configured": bool(settings.assemblyai_api_key),
                "audio_strategies": list(settings.audio_strategies),
                "mcp_path": settings.mcp_path,
            }
        )

    return mcp


def cli() -> None:
    settings = load_settings()
    logging.basicConfig(level=settings.log_level, format="%(asctime)s %(levelname)s %(name)s - %(message)s")
    if not settings.assemblyai_api_key:
        logger.warning("ASSEMBLYAI_API_KEY is not set; story requests will fail until it is configured")

    app = create_app(AppRuntime(settings))
    logger.info("Starting MCP server on %s:%s%s", settings.host, settings.port, settings.mcp_path)
    app.run(
        transport="http",
        host=settings.host,
        port=settings.port,
        path=settings.mcp_path,
    )


if __name__ == "__main__":
    cli()
