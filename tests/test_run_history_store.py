import pytest

from backend.modules.orchestration.schemas import PipelineResult, StepOutcome
from backend.modules.run_history.run_history_store import (
    InMemoryRunHistoryStore,
    JsonlRunHistoryStore,
    PipelineRunRecord,
    RunHistoryStore,
    save_pipeline_run,
)


def _result(run_id="run-1", ok=True):
    steps = [StepOutcome(name="draft", ok=True, output={"text": "hi"}, duration_ms=3.0)]
    if not ok:
        steps.append(StepOutcome(name="publish", ok=False, error="boom", duration_ms=1.0))
    return PipelineResult(
        ok=ok,
        run_id=run_id,
        pipeline="daily",
        steps=steps,
        failed_at=None if ok else "publish",
        started_at=1_700_000_000.0,
        ended_at=1_700_000_001.0,
        duration_ms=1000.0,
    )


class TestPipelineRunRecord:

    def test_from_result(self):
        record = PipelineRunRecord.from_result("daily", _result(ok=False))

        assert record.id == "run-1"
        assert record.ok is False
        assert record.steps[1]["error"] == "boom"
        assert record.result["failedAt"] == "publish"
        assert record.started_at.startswith("2023-11-14T22:13:20")


class TestInMemoryRunHistoryStore:

    @pytest.mark.asyncio
    async def test_save_get_list(self):
        store = InMemoryRunHistoryStore()
        for i in range(3):
            await save_pipeline_run(store, "daily", _result(run_id=f"run-{i}"))

        assert (await store.get("run-1")).pipeline == "daily"
        assert await store.get("missing") is None
        assert [r.id for r in await store.list()] == ["run-2", "run-1", "run-0"]
        assert [r.id for r in await store.list(limit=1)] == ["run-2"]

    @pytest.mark.asyncio
    async def test_oldest_runs_evicted(self):
        store = InMemoryRunHistoryStore(max_runs=2)
        for i in range(3):
            await save_pipeline_run(store, "daily", _result(run_id=f"run-{i}"))

        assert await store.get("run-0") is None
        assert len(await store.list()) == 2


class TestJsonlRunHistoryStore:

    @pytest.mark.asyncio
    async def test_persists_across_instances(self, tmp_path):
        path = tmp_path / "history" / "runs.jsonl"
        await save_pipeline_run(JsonlRunHistoryStore(str(path)), "daily", _result("a"))
        await save_pipeline_run(JsonlRunHistoryStore(str(path)), "daily", _result("b", ok=False))

        store = JsonlRunHistoryStore(str(path))

        assert [r.id for r in await store.list()] == ["b", "a"]
        assert (await store.get("b")).ok is False

    @pytest.mark.asyncio
    async def test_unreadable_lines_skipped(self, tmp_path):
        path = tmp_path / "runs.jsonl"
        store = JsonlRunHistoryStore(str(path))
        await save_pipeline_run(store, "daily", _result("good"))
        with open(path, "a", encoding="utf-8") as f:
            f.write("{not json\n\n")

        assert [r.id for r in await store.list()] == ["good"]

    @pytest.mark.asyncio
    async def test_empty_store(self, tmp_path):
        store = JsonlRunHistoryStore(str(tmp_path / "none.jsonl"))

        assert await store.list() == []
        assert await store.get("x") is None


class TestSavePipelineRun:

    @pytest.mark.asyncio
    async def test_store_errors_are_not_raised(self):
        class BrokenStore(RunHistoryStore):
            async def save(self, record):
                raise IOError("disk full")

            async def get(self, run_id):
                return None

            async def list(self, limit=50):
                return []

        record = await save_pipeline_run(BrokenStore(), "daily", _result())

        assert record is None
