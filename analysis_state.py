"""
State records for a single analysis request.

    IDLE -> REQUESTED -> CACHE_HIT -> DONE
                      -> CACHE_MISS -> IN_FLIGHT -> PARSED -> DONE
                                                 -> PARSE_FAILED -> ERROR
                                                 -> ERROR

DONE and ERROR are terminal; a failed request is never resumed, the caller
issues a new one.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, List, Optional
from uuid import uuid4


class RequestStatus(str, Enum):
    IDLE = "IDLE"
    REQUESTED = "REQUESTED"
    CACHE_HIT = "CACHE_HIT"
    CACHE_MISS = "CACHE_MISS"
    IN_FLIGHT = "IN_FLIGHT"
    PARSED = "PARSED"
    PARSE_FAILED = "PARSE_FAILED"
    DONE = "DONE"
    ERROR = "ERROR"


_TRANSITIONS: Dict[RequestStatus, FrozenSet[RequestStatus]] = {
    RequestStatus.IDLE: frozenset({RequestStatus.REQUESTED}),
    RequestStatus.REQUESTED: frozenset({RequestStatus.CACHE_HIT, RequestStatus.CACHE_MISS}),
    RequestStatus.CACHE_HIT: frozenset({RequestStatus.DONE}),
    RequestStatus.CACHE_MISS: frozenset({RequestStatus.IN_FLIGHT}),
    RequestStatus.IN_FLIGHT: frozenset({RequestStatus.PARSED, RequestStatus.PARSE_FAILED, RequestStatus.ERROR}),
    RequestStatus.PARSED: frozenset({RequestStatus.DONE}),
    RequestStatus.PARSE_FAILED: frozenset({RequestStatus.ERROR}),
    RequestStatus.DONE: frozenset(),
    RequestStatus.ERROR: frozenset(),
}


class InvalidStateTransition(RuntimeError):
    def __init__(self, *, current: RequestStatus, requested: RequestStatus) -> None:
        super().__init__(f"Illegal request transition {current.value} -> {requested.value}")
        self.current = current
        self.requested = requested


@dataclass(slots=True)
class AnalysisRequest:
    """Tracks one `get_analysis` call through the cache and the model."""

    project_name: str
    force_refresh: bool = False
    status: RequestStatus = RequestStatus.IDLE
    history: List[RequestStatus] = field(default_factory=lambda: [RequestStatus.IDLE])
    error: Optional[str] = None
    id: str = field(default_factory=lambda: uuid4().hex)

    @property
    def is_terminal(self) -> bool:
        return not _TRANSITIONS[self.status]

    def advance(self, status: RequestStatus) -> None:
        if status not in _TRANSITIONS[self.status]:
            raise InvalidStateTransition(current=self.status, requested=status)
        self.status = status
        self.history.append(status)

    def fail(self, error: BaseException, *, parse_failure: bool = False) -> None:
        self.error = str(error) or type(error).__name__
        if parse_failure:
            self.advance(RequestStatus.PARSE_FAILED)
        self.advance(RequestStatus.ERROR)
