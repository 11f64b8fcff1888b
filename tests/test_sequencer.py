import asyncio

import pytest

from app.core.errors import SequencerError
from app.services.sequencer import SessionSequencer


def _loader(existing=None, delay=0.0):
    existing = existing or {}

    async def load(session_id):
        await asyncio.sleep(delay)
        return existing.get(session_id)

    return load


@pytest.mark.asyncio
async def test_concurrent_next_ordinal_is_contiguous():
    seq = SessionSequencer(_loader(delay=0.01))
    ordinals = await asyncio.gather(*(seq.next_ordinal("s1") for _ in range(50)))
    assert sorted(ordinals) == list(range(50))


@pytest.mark.asyncio
async def test_sessions_are_numbered_independently():
    seq = SessionSequencer(_loader())
    a = [await seq.next_ordinal("a") for _ in range(3)]
    b = [await seq.next_ordinal("b") for _ in range(2)]
    assert a == [0, 1, 2]
    assert b == [0, 1]


@pytest.mark.asyncio
async def test_other_session_not_blocked_while_slot_held():
    seq = SessionSequencer(_loader())
    async with seq.claim("a") as slot:
        assert slot.ordinal == 0
        other = await asyncio.wait_for(seq.next_ordinal("b"), timeout=1.0)
        slot.commit()
    assert other == 0


@pytest.mark.asyncio
async def test_failed_claim_does_not_consume_ordinal():
    seq = SessionSequencer(_loader())
    with pytest.raises(RuntimeError):
        async with seq.claim("s1"):
            raise RuntimeError("write failed")
    async with seq.claim("s1") as slot:
        assert slot.ordinal == 0
        slot.commit()
    assert await seq.next_ordinal("s1") == 1


@pytest.mark.asyncio
async def test_uncommitted_claim_reseeds_from_storage():
    stored = {}
    calls = []

    async def load(session_id):
        calls.append(session_id)
        return stored.get(session_id)

    seq = SessionSequencer(load)
    async with seq.claim("s1") as slot:
        # row landed but the caller never got to commit
        stored["s1"] = slot.ordinal
    async with seq.claim("s1") as slot:
        assert slot.ordinal == 1
        slot.commit()
    assert calls == ["s1", "s1"]


@pytest.mark.asyncio
async def test_commit_survives_cancellation_after_write():
    seq = SessionSequencer(_loader())
    started = asyncio.Event()

    async def write_then_hang():
        async with seq.claim("s1") as slot:
            slot.commit()
            started.set()
            await asyncio.sleep(10)

    task = asyncio.create_task(write_then_hang())
    await started.wait()
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert await seq.next_ordinal("s1") == 1


@pytest.mark.asyncio
async def test_seeds_from_persisted_max_once():
    calls = []

    async def load(session_id):
        calls.append(session_id)
        return 4

    seq = SessionSequencer(load)
    assert await seq.next_ordinal("s1") == 5
    assert await seq.next_ordinal("s1") == 6
    assert calls == ["s1"]

    seq.forget("s1")
    assert await seq.next_ordinal("s1") == 5
    assert calls == ["s1", "s1"]


@pytest.mark.asyncio
async def test_seed_failure_raises_sequencer_error():
    async def load(session_id):
        raise ConnectionError("db down")

    seq = SessionSequencer(load)
    with pytest.raises(SequencerError):
        await seq.next_ordinal("s1")
