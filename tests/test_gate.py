from __future__ import annotations

import pytest

from synapsebot.core.gate import ProcessingGate


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def test_second_acquire_is_rejected_without_touching_started_at() -> None:
    clock = FakeClock()
    gate = ProcessingGate(timeout=120, clock=clock)

    assert gate.try_acquire(1)
    started = gate.started_at(1)
    clock.now += 30
    assert not gate.try_acquire(1)
    assert gate.started_at(1) == started
    assert gate.is_busy(1)


def test_release_is_idempotent() -> None:
    gate = ProcessingGate()
    gate.release(7)
    assert gate.try_acquire(7)
    gate.release(7)
    gate.release(7)
    assert not gate.is_busy(7)
    assert gate.try_acquire(7)


def test_distinct_conversations_do_not_block_each_other() -> None:
    gate = ProcessingGate()
    assert gate.try_acquire(1)
    assert gate.try_acquire(2)


def test_reap_removes_only_idle_stale_entries() -> None:
    clock = FakeClock()
    gate = ProcessingGate(timeout=120, clock=clock)
    gate.try_acquire("idle-old")
    gate.release("idle-old")
    gate.try_acquire("busy-old")
    clock.now += 200
    gate.try_acquire("idle-new")
    gate.release("idle-new")
    clock.now += 50

    assert gate.reap() == 1
    assert gate.started_at("idle-old") is None
    assert gate.is_busy("busy-old")
    assert gate.started_at("idle-new") is not None
    assert len(gate) == 2


def test_acquire_after_reap_starts_fresh() -> None:
    clock = FakeClock()
    gate = ProcessingGate(timeout=1, clock=clock)
    gate.try_acquire(1)
    gate.release(1)
    clock.now += 10
    gate.reap()

    assert gate.try_acquire(1)
    assert gate.started_at(1) == clock.now


@pytest.mark.asyncio
async def test_hold_releases_on_error() -> None:
    gate = ProcessingGate()
    with pytest.raises(RuntimeError):
        async with gate.hold(1) as acquired:
            assert acquired
            raise RuntimeError("boom")
    assert not gate.is_busy(1)


@pytest.mark.asyncio
async def test_hold_does_not_release_foreign_acquisition() -> None:
    gate = ProcessingGate()
    gate.try_acquire(1)
    async with gate.hold(1) as acquired:
        assert not acquired
    assert gate.is_busy(1)
