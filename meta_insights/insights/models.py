from __future__ import annotations

import json
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Sequence, Tuple, Union

import pandas as pd


class JobMode(str, Enum):
    SYNC = "sync"
    ASYNC = "async"


# Request keys that only steer the orchestration and are never sent to Graph.
INTERNAL_PARAMS = ("retries", "simplify", "job_type")


def _as_tuple(value: Union[None, str, Sequence[Any]]) -> Tuple[Any, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,) if value else ()
    return tuple(value)


@dataclass(frozen=True)
class InsightsRequest:
    """One logical insights call.

    Immutable: a resubmission after a failed job is a new instance built with
    ``with_retries``; ``retries`` is the only field replay ever changes.
    """

    targets: Tuple[str, ...] = ()
    fields: Tuple[str, ...] = ()
    level: Optional[str] = None
    date_preset: Optional[str] = None
    time_range: Optional[Dict[str, str]] = None
    filtering: Tuple[Dict[str, Any], ...] = ()
    breakdowns: Tuple[str, ...] = ()
    params: Mapping[str, Any] = field(default_factory=dict)
    mode: JobMode = JobMode.SYNC
    retries: int = 0
    simplify: bool = True

    def __post_init__(self) -> None:
        object.__setattr__(self, "targets", tuple(str(t) for t in _as_tuple(self.targets)))
        object.__setattr__(self, "fields", _as_tuple(self.fields))
        object.__setattr__(self, "filtering", _as_tuple(self.filtering))
        object.__setattr__(self, "breakdowns", _as_tuple(self.breakdowns))
        object.__setattr__(self, "mode", JobMode(self.mode))
        params = {k: v for k, v in dict(self.params).items() if k not in INTERNAL_PARAMS}
        object.__setattr__(self, "params", MappingProxyType(params))
        if self.retries < 0:
            raise ValueError("retries must be >= 0")

    def __hash__(self) -> int:
        # dict-valued fields hash through their rendered query
        rendered = json.dumps(self.to_params(), sort_keys=True, default=str)
        return hash((self.targets, self.mode, self.retries, self.simplify, rendered))

    @property
    def is_batched(self) -> bool:
        return len(self.targets) > 1

    def with_retries(self, retries: int) -> "InsightsRequest":
        return replace(self, retries=retries)

    def with_mode(self, mode: JobMode) -> "InsightsRequest":
        return replace(self, mode=mode)

    def with_targets(self, targets: Sequence[str]) -> "InsightsRequest":
        return replace(self, targets=tuple(targets))

    def to_params(self) -> Dict[str, Any]:
        """Graph query parameters. Lists are comma-joined, structures JSON-encoded."""
        out: Dict[str, Any] = {}
        for k, v in self.params.items():
            if v is None:
                continue
            if isinstance(v, (list, tuple)) and all(isinstance(x, str) for x in v):
                out[k] = ",".join(v)
            elif isinstance(v, (dict, list, tuple)):
                out[k] = json.dumps(v)
            else:
                out[k] = v
        if self.fields:
            out["fields"] = ",".join(self.fields)
        if self.level:
            out["level"] = self.level
        if self.date_preset:
            out["date_preset"] = self.date_preset
        if self.time_range:
            out["time_range"] = json.dumps(self.time_range)
        if self.filtering:
            out["filtering"] = json.dumps(list(self.filtering))
        if self.breakdowns:
            out["breakdowns"] = ",".join(self.breakdowns)
        return out


class JobStatus(Enum):
    NOT_STARTED = "not_started"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, async_status: Any) -> "JobStatus":
        return _GRAPH_STATUSES.get(str(async_status or "").strip(), cls.UNKNOWN)

    @property
    def terminal(self) -> bool:
        return self not in (JobStatus.NOT_STARTED, JobStatus.RUNNING)


_GRAPH_STATUSES = {
    "Job Not Started": JobStatus.NOT_STARTED,
    "Job Started": JobStatus.RUNNING,
    "Job Running": JobStatus.RUNNING,
    "Job Completed": JobStatus.COMPLETED,
    "Job Failed": JobStatus.FAILED,
}


@dataclass(frozen=True)
class JobStatusSnapshot:
    status: JobStatus
    percent: float
    raw_status: str
    payload: Dict[str, Any]

    @staticmethod
    def from_payload(payload: Mapping[str, Any]) -> "JobStatusSnapshot":
        raw = str(payload.get("async_status") or "")
        try:
            percent = float(payload.get("async_percent_completion") or 0)
        except (TypeError, ValueError):
            percent = 0.0
        return JobStatusSnapshot(
            status=JobStatus.parse(raw),
            percent=min(100.0, max(0.0, percent)),
            raw_status=raw,
            payload=dict(payload),
        )


@dataclass(frozen=True)
class JobHandle:
    job_id: str
    submitted_at: datetime


@dataclass
class PollState:
    interval: float
    last_percent: float
    started_at: datetime


@dataclass(frozen=True)
class ReportPage:
    rows: List[Any]
    next_url: Optional[str] = None


@dataclass
class ReportResult:
    pages: List[ReportPage] = field(default_factory=list)
    table: Optional[pd.DataFrame] = None

    @property
    def rows(self) -> List[Any]:
        return [row for page in self.pages for row in page.rows]

    @property
    def data(self) -> List[List[Any]]:
        return [page.rows for page in self.pages]

    def __len__(self) -> int:
        return len(self.pages)

    def __iter__(self) -> Iterator[ReportPage]:
        return iter(self.pages)


@dataclass(frozen=True)
class RetryContext:
    """What a resubmission needs: the request as originally issued and the call to replay it through."""

    request: InsightsRequest
    attempt: int
    replay: Callable[[InsightsRequest], "ReportResult"]
