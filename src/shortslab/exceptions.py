from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ErrorCategory(str, Enum):
    CONFIG = "config"
    DEPENDENCY = "dependency"
    RUNTIME = "runtime"


DEFAULT_EXIT_CODES: dict[ErrorCategory, int] = {
    ErrorCategory.RUNTIME: 1,
    ErrorCategory.CONFIG: 2,
    ErrorCategory.DEPENDENCY: 3,
}


@dataclass
class ShortsLabError(Exception):
    """Base exception for shortslab with standardized categories."""

    message: str
    category: ErrorCategory = ErrorCategory.RUNTIME
    exit_code: int | None = None

    def __post_init__(self) -> None:
        super().__init__(self.message)
        if self.exit_code is None:
            self.exit_code = DEFAULT_EXIT_CODES.get(self.category, 1)

    def label(self) -> str:
        return {
            ErrorCategory.CONFIG: "Configuration error",
            ErrorCategory.DEPENDENCY: "Dependency error",
            ErrorCategory.RUNTIME: "Runtime error",
        }.get(self.category, "Error")


class DependencyMissingError(ShortsLabError):
    """Raised when a required external dependency is missing."""

    def __init__(self, message: str, *, exit_code: int | None = None) -> None:
        super().__init__(
            message,
            category=ErrorCategory.DEPENDENCY,
            exit_code=exit_code,
        )


class ConfigurationError(ShortsLabError):
    """Raised when configuration is invalid."""

    def __init__(self, message: str, *, exit_code: int | None = None) -> None:
        super().__init__(
            message,
            category=ErrorCategory.CONFIG,
            exit_code=exit_code,
        )


class ProvisioningError(DependencyMissingError):
    """Speech/encoder engine binary or model is not available."""


class TranscriptionError(ShortsLabError):
    """The speech engine failed (non-zero exit or unusable audio)."""

    def __init__(self, message: str, *, exit_code: int | None = None) -> None:
        super().__init__(message, category=ErrorCategory.RUNTIME, exit_code=exit_code)

    def label(self) -> str:
        return "Transcription error"


class MissingArtifactError(ShortsLabError):
    """An expected transcript artifact is absent even after the fallback search."""

    def __init__(self, message: str, *, exit_code: int | None = None) -> None:
        super().__init__(message, category=ErrorCategory.RUNTIME, exit_code=exit_code)

    def label(self) -> str:
        return "Missing artifact"


class EncodingError(ShortsLabError):
    """The encoder exited non-zero."""

    def __init__(self, message: str, *, exit_code: int | None = None) -> None:
        super().__init__(message, category=ErrorCategory.RUNTIME, exit_code=exit_code)

    def label(self) -> str:
        return "Encoding error"
