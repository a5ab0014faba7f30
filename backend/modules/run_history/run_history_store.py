"""Run history for completed pipeline invocations.

Stores the final PipelineResult of each run for the admin history screens.
The orchestrator never writes here itself: callers persist results after
responding, and persistence errors are logged, never surfaced.
"""

import asyncio
import json
import uuid
from abc import ABC, abstractmethod
from collections import OrderedDict
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import Field

from backend.config import get_orchestrator_settings
from backend.logger import logger
from backend.modules.orchestration.schemas import PipelineResult
from backend.types import CamelCaseModel


def _iso(timestamp: Optional[float]) -> Optional[str]:
    if timestamp is None:
        return None
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).isoformat()


class PipelineRunRecord(CamelCaseModel):
    """Persisted pipeline run.

    Attributes:
        id: Run identifier (the PipelineResult run_id)
        pipeline: Pipeline name
        ok: Whether the run succeeded
        steps: Per-step outcomes
        result: Full PipelineResult as JSON-compatible data
        duration_ms: Total run time
        started_at: Run start (ISO 8601, UTC)
        ended_at: Run end (ISO 8601, UTC)
        created_at: When the record was stored
    """

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    pipeline: str
    ok: bool
    steps: List[Dict[str, Any]] = Field(default_factory=list)
    result: Dict[str, Any] = Field(default_factory=dict)
    duration_ms: Optional[float] = None
    started_at: Optional[str] = None
    ended_at: Optional[str] = None
    created_at: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    @classmethod
    def from_result(cls, pipeline: str, result: PipelineResult) -> "PipelineRunRecord":
        data = result.model_dump(mode="json", by_alias=True)
        return cls(
            id=result.run_id,
            pipeline=pipeline,
            ok=result.ok,
            steps=data["steps"],
            result=data,
            duration_ms=result.duration_ms,
            started_at=_iso(result.started_at),
            ended_at=_iso(result.ended_at),
        )


class RunHistoryStore(ABC):
    """Sink for completed pipeline runs."""

    @abstractmethod
    async def save(self, record: PipelineRunRecord) -> None:
        """Persist one run record."""

    @abstractmethod
    async def get(self, run_id: str) -> Optional[PipelineRunRecord]:
        """Fetch one run by id, or None."""

    @abstractmethod
    async def list(self, limit: int = 50) -> List[PipelineRunRecord]:
        """List runs, newest first."""


class InMemoryRunHistoryStore(RunHistoryStore):
    """Bounded in-process history; the oldest runs are evicted first."""

    def __init__(self, max_runs: int = 500):
        self.max_runs = max_runs
        self._runs: "OrderedDict[str, PipelineRunRecord]" = OrderedDict()
        self._lock = asyncio.Lock()

    async def save(self, record: PipelineRunRecord) -> None:
        async with self._lock:
            self._runs[record.id] = record
            self._runs.move_to_end(record.id)
            while len(self._runs) > self.max_runs:
                self._runs.popitem(last=False)

    async def get(self, run_id: str) -> Optional[PipelineRunRecord]:
        return self._runs.get(run_id)

    async def list(self, limit: int = 50) -> List[PipelineRunRecord]:
        records = list(self._runs.values())
        records.reverse()
        return records[:limit]


class JsonlRunHistoryStore(RunHistoryStore):
    """Append-only JSONL history file.

    Example:
        store = JsonlRunHistoryStore("./data/pipeline_runs.jsonl")
        await store.save(PipelineRunRecord.from_result("daily-visibility", result))
        latest = await store.list(limit=20)
    """

    def __init__(self, path: str = "./data/pipeline_runs.jsonl"):
        """Initialize JSONL run history store.

        Args:
            path: File path for run records; parent directories are created
        """
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = asyncio.Lock()

    async def save(self, record: PipelineRunRecord) -> None:
        async with self._lock:
            with open(self.path, "a", encoding="utf-8") as f:
                f.write(record.model_dump_json() + "\n")

    async def _read_all(self) -> List[PipelineRunRecord]:
        if not self.path.exists():
            return []

        records = []
        async with self._lock:
            with open(self.path, "r", encoding="utf-8") as f:
                for line in f:
                    line = line.strip()
                    if not line:
                        continue
                    try:
                        records.append(PipelineRunRecord(**json.loads(line)))
                    except ValueError as e:
                        logger.warning(f"Skipping unreadable run history line in {self.path}: {e}")
        return records

    async def get(self, run_id: str) -> Optional[PipelineRunRecord]:
        for record in await self._read_all():
            if record.id == run_id:
                return record
        return None

    async def list(self, limit: int = 50) -> List[PipelineRunRecord]:
        records = await self._read_all()
        records.reverse()
        return records[:limit]


async def save_pipeline_run(
    store: RunHistoryStore, pipeline: str, result: PipelineResult
) -> Optional[PipelineRunRecord]:
    """
    Persist a pipeline result without ever raising.

    Args:
        store: Destination store
        pipeline: Pipeline name recorded with the run
        result: Result to persist

    Returns:
        The stored record, or None if persistence failed
    """
    try:
        record = PipelineRunRecord.from_result(pipeline, result)
        await store.save(record)
        logger.debug(f"Saved pipeline run {record.id} ({pipeline})")
        return record
    except Exception as e:
        logger.error(f"Failed to save pipeline run {result.run_id} ({pipeline}): {e}")
        return None


# Singleton instance
_run_history_store: Optional[RunHistoryStore] = None


def get_run_history_store() -> RunHistoryStore:
    """Get or create the singleton run history store.

    Uses a JSONL file when PIPELINE_RUN_HISTORY_PATH is set, memory otherwise.

    Returns:
        RunHistoryStore instance
    """
    global _run_history_store
    if _run_history_store is None:
        settings = get_orchestrator_settings()
        if settings.run_history_path:
            _run_history_store = JsonlRunHistoryStore(settings.run_history_path)
        else:
            _run_history_store = InMemoryRunHistoryStore(settings.run_history_limit)
    return _run_history_store
