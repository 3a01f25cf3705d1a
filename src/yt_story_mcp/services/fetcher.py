from __future__ import annotations

import asyncio
import logging
import shutil
from typing import Any, Callable, Protocol, Sequence

import httpx
import yt_dlp

from yt_story_mcp.errors import AcquisitionError, ConfigurationError
from yt_story_mcp.utils.url import watch_url

logger = logging.getLogger(__name__)

YOUTUBE_REFERER = "https://www.youtube.com/"


class AcquisitionStrategy(Protocol):
    name: str

    def is_available(self) -> bool: ...

    async def attempt(self, video_id: str) -> bytes: ...


class AudioFetcher:
    """Tries each acquisition strategy once, in order, until one yields audio."""

    def __init__(self, strategies: Sequence[AcquisitionStrategy]) -> None:
        self.strategies = list(strategies)

    async def fetch_audio(self, video_id: str) -> bytes:
        failures: list[str] = []
        attempted = 0
        for strategy in self.strategies:
            if not strategy.is_available():
                logger.info("Skipping unavailable acquisition strategy %s", strategy.name)
                continue

            attempted += 1
            try:
                payload = await strategy.attempt(video_id)
            except Exception as exc:  # pylint: disable=broad-except
                reason = str(exc).strip() or exc.__class__.__name__
                logger.warning("Strategy %s failed for %s: %s", strategy.name, video_id, reason)
                failures.append(f"{strategy.name}: {reason}")
                continue

            if not payload:
                logger.warning("Strategy %s returned no audio for %s", strategy.name, video_id)
                failures.append(f"{strategy.name}: empty audio payload")
                continue

            logger.info("Fetched %d audio bytes for %s via %s", len(payload), video_id, strategy.name)
            return bytes(payload)

        if attempted == 0:
            raise ConfigurationError("no audio acquisition strategy is available")
        raise AcquisitionError("; ".join(failures))


class YtDlpProcessStrategy:
    """Runs the yt-dlp executable and reads the audio from its stdout."""

    name = "yt-dlp-process"

    def __init__(
        self,
        executable: str,
        *,
        user_agent: str = "Mozilla/5.0",
        accept_language: str | None = None,
        chunk_size: int = 64 * 1024,
    ) -> None:
        self.executable = executable
        self.user_agent = user_agent
        self.accept_language = accept_language
        self.chunk_size = chunk_size

    def is_available(self) -> bool:
        return bool(self.executable) and shutil.which(self.executable) is not None

    def build_command(self, video_id: str) -> list[str]:
        cmd = [
            self.executable,
            "-f",
            "bestaudio",
            "--no-playlist",
            "--no-progress",
            "--quiet",
            "-o",
            "-",
            "--user-agent",
            self.user_agent,
        ]
        if self.accept_language:
            cmd.extend(["--add-header", f"Accept-Language: {self.accept_language}"])
        cmd.append(watch_url(video_id))
        return cmd

    async def attempt(self, video_id: str) -> bytes:
        process = await asyncio.create_subprocess_exec(
            *self.build_command(video_id),
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        try:
            chunks, stderr = await asyncio.gather(
                self._read_chunks(process.stdout),
                process.stderr.read(),
            )
            returncode = await process.wait()
        finally:
            if process.returncode is None:
                process.kill()
                await process.wait()

        if returncode != 0:
            message = stderr.decode("utf-8", errors="replace").strip() or "no diagnostic output"
            raise RuntimeError(f"yt-dlp exited with code {returncode}: {message}")
        return b"".join(chunks)

    async def _read_chunks(self, stream: asyncio.StreamReader) -> list[bytes]:
        chunks: list[bytes] = []
        while True:
            chunk = await stream.read(self.chunk_size)
            if not chunk:
                return chunks
            chunks.append(chunk)


class YtDlpLibraryStrategy:
    """Resolves the audio stream with the yt_dlp package and downloads it directly."""

    name = "yt-dlp-library"

    def __init__(
        self,
        http: httpx.AsyncClient,
        *,
        user_agent: str = "Mozilla/5.0",
        accept_language: str | None = None,
        cookie: str | None = None,
        ydl_factory: Callable[[dict[str, Any]], Any] = yt_dlp.YoutubeDL,
    ) -> None:
        self.http = http
        self.user_agent = user_agent
        self.accept_language = accept_language
        self.cookie = cookie
        self.ydl_factory = ydl_factory

    def is_available(self) -> bool:
        return True

    def request_headers(self) -> dict[str, str]:
        headers = {"User-Agent": self.user_agent, "Referer": YOUTUBE_REFERER}
        if self.accept_language:
            headers["Accept-Language"] = self.accept_language
        if self.cookie:
            headers["Cookie"] = self.cookie
        return headers

    async def attempt(self, video_id: str) -> bytes:
        stream_url, stream_headers = await asyncio.to_thread(self._resolve_stream, watch_url(video_id))
        headers = {**stream_headers, **self.request_headers()}

        chunks: list[bytes] = []
        async with self.http.stream("GET", stream_url, headers=headers, follow_redirects=True) as response:
            if response.status_code >= 400:
                raise RuntimeError(f"audio stream request failed ({response.status_code})")
            async for chunk in response.aiter_bytes():
                chunks.append(chunk)
        return b"".join(chunks)

    def _resolve_stream(self, url: str) -> tuple[str, dict[str, str]]:
        options = {
            "format": "bestaudio/best",
            "quiet": True,
            "no_warnings": True,
            "noplaylist": True,
            "http_headers": self.request_headers(),
        }
        with self.ydl_factory(options) as ydl:
            info = ydl.extract_info(url, download=False)

        if not isinstance(info, dict):
            raise RuntimeError("yt_dlp returned no video information")

        selected = info
        if not info.get("url"):
            requested = [item for item in info.get("requested_formats") or [] if item.get("url")]
            if not requested:
                raise RuntimeError("yt_dlp did not resolve an audio stream URL")
            selected = requested[0]

        headers = {str(k): str(v) for k, v in (selected.get("http_headers") or {}).items()}
        return str(selected["url"]), headers


def build_strategies(
    names: Sequence[str],
    *,
    http: httpx.AsyncClient,
    ytdlp_path: str,
    user_agent: str,
    accept_language: str | None,
    cookie: str | None,
) -> list[AcquisitionStrategy]:
    strategies: list[AcquisitionStrategy] = []
    for name in names:
        if name == "library":
            strategies.append(
                YtDlpLibraryStrategy(
                    http,
                    user_agent=user_agent,
                    accept_language=accept_language,
                    cookie=cookie,
                )
            )
        elif name == "process":
            strategies.append(
                YtDlpProcessStrategy(
                    ytdlp_path,
                    user_agent=user_agent,
                    accept_language=accept_language,
                )
            )
        else:
            raise ConfigurationError(f"unknown audio strategy '{name}'")
    return strategies
