"""Error taxonomy shared by every stage of the icon pipeline."""

from __future__ import annotations

from enum import Enum


class IconError(str, Enum):
    NOT_FOUND = "NotFound"
    NETWORK_ERROR = "NetworkError"
    DECODE_FAILED = "DecodeFailed"
    UNSUPPORTED = "Unsupported"
    WRITE_FAILED = "WriteFailed"

    def __str__(self) -> str:
        return self.value


class IconPipelineError(Exception):
    """Raised inside the pipeline; entry points convert it to a failed Result."""

    error: IconError = IconError.NOT_FOUND

    def __init__(self, message: str = "", *, error: IconError | None = None) -> None:
        super().__init__(message or str(error or self.error))
        if error is not None:
            self.error = error

    @property
    def message(self) -> str:
        return str(self.args[0]) if self.args else ""


class DecodeFailed(IconPipelineError):
    error = IconError.DECODE_FAILED


class Unsupported(IconPipelineError):
    error = IconError.UNSUPPORTED


class WriteFailed(IconPipelineError):
    error = IconError.WRITE_FAILED
