"""Shared error classes for the research pipeline."""

from __future__ import annotations


class ResearchError(RuntimeError):
    """Base exception raised by research pipeline components."""

    def __init__(self, message: str, code: str = "RESEARCH_ERROR") -> None:
        super().__init__(message)
        self.code = code


class InvalidUrlError(ResearchError):
    """Raised when a candidate URL is not an absolute http(s) URL."""

    def __init__(self, message: str, code: str = "422_INVALID_URL") -> None:
        super().__init__(message, code=code)


class UnreachableError(ResearchError):
    """Raised when a liveness probe reports the URL as dead."""

    def __init__(self, message: str, code: str = "503_SOURCE_UNREACHABLE") -> None:
        super().__init__(message, code=code)


class FetchFailureError(ResearchError):
    """Raised when a page cannot be downloaded."""

    def __init__(self, message: str, code: str = "520_FETCH_ERROR", *, attempts: int = 1) -> None:
        super().__init__(message, code=code)
        self.attempts = attempts


class InsufficientContentError(FetchFailureError):
    """Raised when a page downloads but yields too little readable text."""

    def __init__(self, message: str, *, attempts: int = 1) -> None:
        super().__init__(message, code="422_INSUFFICIENT_CONTENT", attempts=attempts)


class AnalysisMalformedError(ResearchError):
    """Raised when generative output cannot be decoded into the expected schema."""


class GenerativeCallError(ResearchError):
    """Raised when the generative backend call itself fails."""

    def __init__(self, message: str, code: str = "502_GENERATIVE_UPSTREAM") -> None:
        super().__init__(message, code=code)


class PipelineError(ResearchError):
    """Raised by the orchestrator for conditions that end a run early."""
