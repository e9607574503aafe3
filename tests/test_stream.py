import dataclasses
import itertools
from pathlib import Path

import pytest

from spoolq.adapters.events.null import NullEventSource
from spoolq.core.selection import CorruptPolicy
from spoolq.core.spool import SpoolQueue
from spoolq.core.stream import End, NotReady, QueueStream, Ready
from spoolq.domain.errors import CodecError
from spoolq.domain.models import SpoolStats

# ---------------------------------------------------------------------------
# Controllable event source
# ---------------------------------------------------------------------------


@dataclasses.dataclass
class _ManualEvents:
    pending: int = 0
    drains: int = 0
    is_closed: bool = False

    @property
    def watches(self) -> bool:
        return True

    @property
    def closed(self) -> bool:
        return self.is_closed

    def notify(self, n: int = 1) -> None:
        self.pending += n

    def drain(self) -> int:
        self.drains += 1
        count, self.pending = self.pending, 0
        return count

    def close(self) -> None:
        self.is_closed = True


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def queue(tmp_path: Path) -> SpoolQueue[dict]:
    return SpoolQueue(tmp_path / "spool")


@pytest.fixture
def events() -> _ManualEvents:
    return _ManualEvents()


def _fill(queue: SpoolQueue[dict], n: int) -> None:
    for i in range(n):
        queue.push({"i": i})


# ---------------------------------------------------------------------------
# Plain polling
# ---------------------------------------------------------------------------


def test_default_event_source_is_plain_polling(queue: SpoolQueue[dict]) -> None:
    stream = QueueStream(queue)
    assert isinstance(stream.events, NullEventSource)


def test_poll_empty_is_not_ready(queue: SpoolQueue[dict]) -> None:
    assert QueueStream(queue).poll() == NotReady()


def test_poll_returns_ready_item(queue: SpoolQueue[dict]) -> None:
    queue.push({"i": 7})
    stream = QueueStream(queue)
    assert stream.poll() == Ready({"i": 7})
    assert stream.poll() == NotReady()


def test_poll_sees_items_pushed_later(queue: SpoolQueue[dict]) -> None:
    stream = QueueStream(queue)
    assert stream.poll() == NotReady()
    queue.push({"i": 1})
    assert stream.poll() == Ready({"i": 1})


def test_stream_sum_matches_fold(queue: SpoolQueue[dict]) -> None:
    _fill(queue, 100)
    stream = QueueStream(queue, poll_interval=0.001)
    total = sum(item["i"] for item in itertools.islice(stream, 100))
    assert total == 4950


async def test_async_stream_sum_matches_fold(queue: SpoolQueue[dict]) -> None:
    _fill(queue, 100)
    total = 0
    count = 0
    async with QueueStream(queue, poll_interval=0.001) as stream:
        async for item in stream:
            total += item["i"]
            count += 1
            if count == 100:
                break
    assert total == 4950


def test_stream_never_acknowledges(queue: SpoolQueue[dict]) -> None:
    _fill(queue, 5)
    list(itertools.islice(QueueStream(queue), 5))
    assert queue.stats() == SpoolStats(consumed=5)
    assert queue.recover() == 5


def test_poll_propagates_codec_error(tmp_path: Path) -> None:
    queue: SpoolQueue[dict] = SpoolQueue(
        tmp_path / "spool", on_corrupt=CorruptPolicy.RAISE
    )
    (queue.path / "0000000000000000-bad").write_bytes(b"\x00\x01")
    with pytest.raises(CodecError):
        QueueStream(queue).poll()


# ---------------------------------------------------------------------------
# End of stream
# ---------------------------------------------------------------------------


def test_poll_after_close_is_end(queue: SpoolQueue[dict]) -> None:
    queue.push({"i": 1})
    stream = QueueStream(queue)
    stream.close()
    assert stream.poll() == End()
    assert queue.stats().visible == 1


def test_iteration_stops_at_end(queue: SpoolQueue[dict], events: _ManualEvents) -> None:
    _fill(queue, 3)
    events.close()
    assert list(QueueStream(queue, events)) == []


def test_context_manager_closes_source(
    queue: SpoolQueue[dict], events: _ManualEvents
) -> None:
    with QueueStream(queue, events):
        assert not events.closed
    assert events.closed


async def test_async_iteration_stops_when_source_closes(
    queue: SpoolQueue[dict], events: _ManualEvents
) -> None:
    _fill(queue, 10)
    events.notify()
    seen = []
    async with QueueStream(queue, events, poll_interval=0.001) as stream:
        async for item in stream:
            seen.append(item["i"])
            if len(seen) == 4:
                events.close()
    assert len(seen) == 4
    assert queue.stats() == SpoolStats(visible=6, consumed=4)


# ---------------------------------------------------------------------------
# Watch-assisted polling
# ---------------------------------------------------------------------------


def test_watch_mode_delivers_backlog_without_notification(
    queue: SpoolQueue[dict], events: _ManualEvents
) -> None:
    _fill(queue, 3)
    stream = QueueStream(queue, events)

    results = [stream.poll() for _ in range(3)]
    assert sorted(r.item["i"] for r in results) == [0, 1, 2]  # type: ignore[union-attr]
    assert stream.poll() == NotReady()


def test_watch_mode_waits_for_notification(
    queue: SpoolQueue[dict], events: _ManualEvents
) -> None:
    stream = QueueStream(queue, events)
    assert stream.poll() == NotReady()  # backlog scan finds nothing

    queue.push({"i": 1})
    assert stream.poll() == NotReady()
    assert events.drains == 2
    assert queue.stats().visible == 1


def test_watch_mode_pops_after_notification(
    queue: SpoolQueue[dict], events: _ManualEvents
) -> None:
    queue.push({"i": 1})
    stream = QueueStream(queue, events)
    events.notify()
    assert stream.poll() == Ready({"i": 1})


def test_watch_mode_drains_a_burst_from_one_notification(
    queue: SpoolQueue[dict], events: _ManualEvents
) -> None:
    _fill(queue, 3)
    stream = QueueStream(queue, events)
    events.notify()

    results = [stream.poll() for _ in range(3)]
    assert sorted(r.item["i"] for r in results) == [0, 1, 2]  # type: ignore[union-attr]
    assert stream.poll() == NotReady()


def test_watch_mode_idles_after_spool_is_empty(
    queue: SpoolQueue[dict], events: _ManualEvents
) -> None:
    stream = QueueStream(queue, events)
    events.notify()
    assert stream.poll() == NotReady()

    # Without a new notification the spool is not scanned again.
    queue.push({"i": 1})
    assert stream.poll() == NotReady()
    events.notify()
    assert stream.poll() == Ready({"i": 1})


def test_watch_mode_stream_sum(queue: SpoolQueue[dict], events: _ManualEvents) -> None:
    _fill(queue, 100)
    events.notify(100)
    stream = QueueStream(queue, events, poll_interval=0.001)
    assert sum(item["i"] for item in itertools.islice(stream, 100)) == 4950
