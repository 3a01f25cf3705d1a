from __future__ import annotations

from dataclasses import dataclass
from typing import Any

JOB_STATUSES = frozenset({"queued", "processing", "completed", "error"})


@dataclass(slots=True, frozen=True)
class TranscriptionOptions:
    language_code: str = "pt"
    punctuate: bool = True
    format_text: bool = True

    def to_payload(self, audio_url: str) -> dict[str, Any]:
        return {
            "audio_url": audio_url,
            "language_code": self.language_code,
            "punctuate": self.punctuate,
            "format_text": self.format_text,
        }


@dataclass(slots=True, frozen=True)
class TranscriptionJob:
    id: str
    status: str
    text: str | None = None
    error: str | None = None

    @classmethod
    def from_payload(cls, payload: dict[str, Any], fallback_id: str) -> TranscriptionJob:
        status = str(payload.get("status") or "").lower()
        if status not in JOB_STATUSES:
            raise ValueError(f"unexpected transcript status {payload.get('status')!r}")
        text = payload.get("text")
        error = payload.get("error")
        return cls(
            id=str(payload.get("id") or fallback_id),
            status=status,
            text=str(text) if text is not None else None,
            error=str(error) if error is not None else None,
        )


@dataclass(slots=True, frozen=True)
class ScriptBundle:
    beats: tuple[str, ...]
    script: str
    source_prompt: str


@dataclass(slots=True, frozen=True)
class StoryResult:
    transcript: str
    transcript_id: str
    bundle: ScriptBundle

    def to_dict(self) -> dict[str, Any]:
        return {
            "text": self.transcript,
            "beats": list(self.bundle.beats),
            "script": self.bundle.script,
            "prompt": self.bundle.source_prompt,
            "transcript_id": self.transcript_id,
        }
