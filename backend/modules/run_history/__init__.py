"""Persisted history of completed pipeline runs.

Components:
    - PipelineRunRecord: Stored form of a PipelineResult
    - RunHistoryStore: Store interface (save/get/list)
    - InMemoryRunHistoryStore, JsonlRunHistoryStore: Implementations
    - save_pipeline_run: Fire-and-forget persistence that never raises
"""

from .run_history_store import (
    InMemoryRunHistoryStore,
    JsonlRunHistoryStore,
    PipelineRunRecord,
    RunHistoryStore,
    get_run_history_store,
    save_pipeline_run,
)

__all__ = [
    "InMemoryRunHistoryStore",
    "JsonlRunHistoryStore",
    "PipelineRunRecord",
    "RunHistoryStore",
    "get_run_history_store",
    "save_pipeline_run",
]
