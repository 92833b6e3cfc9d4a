"""Error taxonomy for the analysis pipeline."""

from __future__ import annotations

from typing import Optional


class ParseError(ValueError):
    """Raised when model output cannot be recovered to a JSON value."""

    def __init__(self, message: str, *, snippet: str = "") -> None:
        super().__init__(message)
        self.snippet = snippet


class ProviderError(RuntimeError):
    """Raised when the model or search call itself failed."""


class SegmentTimeoutError(ProviderError):
    """Raised when a segment request exceeds its time budget."""

    def __init__(self, *, segment: str, timeout: float) -> None:
        super().__init__(f"Segment '{segment}' timed out after {timeout:.0f}s")
        self.segment = segment
        self.timeout = timeout


class AggregationError(RuntimeError):
    """Raised when one segment of a multi-segment report could not be used."""

    def __init__(
        self,
        *,
        failed_segment: str,
        segment_index: int,
        snippet: str = "",
        reason: Optional[str] = None,
    ) -> None:
        detail = f": {reason}" if reason else ""
        super().__init__(f"Segment {segment_index} ('{failed_segment}') could not be parsed{detail}")
        self.failed_segment = failed_segment
        self.segment_index = segment_index
        self.snippet = snippet
        self.reason = reason
