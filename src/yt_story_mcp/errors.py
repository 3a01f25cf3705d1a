from __future__ import annotations

STAGE_DESCRIPTIONS = {
    "request": "Request validation",
    "configuration": "Configuration check",
    "acquisition": "Audio acquisition",
    "upload": "Audio upload",
    "submission": "Transcript creation",
    "polling": "Transcription",
}


class PipelineError(RuntimeError):
    """Base for every failure surfaced to callers, tagged with its stage."""

    stage = "pipeline"

    def __init__(self, message: str, *, stage: str | None = None) -> None:
        if stage is not None:
            self.stage = stage
        self.detail = message
        super().__init__(message)

    @property
    def user_message(self) -> str:
        description = STAGE_DESCRIPTIONS.get(self.stage, self.stage.capitalize())
        return f"{description} failed: {self.detail}"


class InvalidRequestError(PipelineError):
    stage = "request"


class ConfigurationError(PipelineError):
    stage = "configuration"


class AcquisitionError(PipelineError):
    stage = "acquisition"


class UploadError(PipelineError):
    stage = "upload"


class SubmissionError(PipelineError):
    stage = "submission"


class TranscriptionError(PipelineError):
    stage = "polling"


class TranscriptionTimeoutError(PipelineError):
    stage = "polling"
