from __future__ import annotations

from typing import List, Optional


class FlowBridgeError(Exception):
    """Base error for failures a caller can turn into a client-facing response."""


class DocumentError(FlowBridgeError):
    """A model answer that could not be turned into a workflow document."""

    def __init__(self, message: str, raw_text: str) -> None:
        super().__init__(message)
        self.message = message
        self.raw_text = raw_text

    def snippet(self, limit: int = 200) -> str:
        text = self.raw_text.strip().replace("\n", " ")
        return (text[:limit] + "...") if len(text) > limit else text


class ExtractionError(DocumentError):
    """No balanced JSON value in the text, or the candidate span is not strict JSON."""


class ValidationError(DocumentError):
    """Parsed JSON is missing required top-level fields or carries disallowed ones."""

    def __init__(
        self,
        message: str,
        raw_text: str,
        missing_fields: Optional[List[str]] = None,
        extra_fields: Optional[List[str]] = None,
    ) -> None:
        super().__init__(message, raw_text)
        self.missing_fields = list(missing_fields or [])
        self.extra_fields = list(extra_fields or [])


class GenerationError(FlowBridgeError):
    """The model could not be called or gave no usable answer."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class SubmissionError(FlowBridgeError):
    def __init__(self, message: str, status_code: int | None = None, body: str = "") -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.body = body
