from __future__ import annotations

import pytest

from app.workers.runner import WorkerOptions, run_worker


def test_worker_options_default_to_single_run(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("RECURRING_WORKER_MODE", raising=False)
    monkeypatch.delenv("RECURRING_WORKER_POLL_SECONDS", raising=False)

    options = WorkerOptions.from_env("RECURRING_WORKER", name="sweeper", poll_seconds=86400, log_level="INFO")

    assert options.mode == "once"
    assert options.poll_seconds == 86400


def test_worker_options_read_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("OUTBOX_WORKER_MODE", " Poll ")
    monkeypatch.setenv("OUTBOX_WORKER_POLL_SECONDS", "15")
    monkeypatch.setenv("OUTBOX_WORKER_LOG_LEVEL", "DEBUG")

    options = WorkerOptions.from_env("OUTBOX_WORKER", name="outbox", poll_seconds=10, log_level="INFO")

    assert (options.mode, options.poll_seconds, options.log_level) == ("poll", 15, "DEBUG")


def test_unknown_worker_mode_is_rejected(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("OUTBOX_WORKER_MODE", "forever")

    with pytest.raises(ValueError):
        WorkerOptions.from_env("OUTBOX_WORKER", name="outbox", poll_seconds=10, log_level="INFO")


@pytest.mark.asyncio
async def test_once_mode_runs_a_single_cycle() -> None:
    calls: list[int] = []

    async def _cycle() -> dict[str, int]:
        calls.append(1)
        return {"processed": 0}

    await run_worker(_cycle, WorkerOptions(name="test", mode="once", poll_seconds=1, log_level="INFO"))

    assert calls == [1]
