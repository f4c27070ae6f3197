import pytest

from core.clock import ManualClock
from core.errors import SchedulerError


class DummyMCP:
    """Minimal FastMCP stand-in to capture tool registration."""

    def __init__(self) -> None:
        self.tools = {}

    def tool(self, *, name: str):
        def _decorator(fn):
            self.tools[name] = fn
            return fn
        return _decorator


class FakeTask:
    def __init__(self, due: int, callback):
        self.due = due
        self.callback = callback
        self.cancelled = False
        self.fired = False

    def cancel(self) -> bool:
        if self.cancelled or self.fired:
            return False
        self.cancelled = True
        return True


class FakeScheduler:
    """TaskScheduler driven by a ManualClock; callbacks fire only in advance()."""

    def __init__(self, clock: ManualClock) -> None:
        self.clock = clock
        self.tasks = []
        self.shutdown_calls = 0
        self.refuse = False

    def schedule(self, delay_ms: int, callback):
        if self.refuse:
            raise SchedulerError("refused")
        task = FakeTask(self.clock.now_ms() + delay_ms, callback)
        self.tasks.append(task)
        return task

    def shutdown(self) -> None:
        self.shutdown_calls += 1
        for t in self.tasks:
            t.cancel()

    @property
    def pending(self):
        return [t for t in self.tasks if not t.cancelled and not t.fired]

    def advance(self, delta_ms: int) -> None:
        # Fire due tasks in order, moving the clock to each task's due time
        target = self.clock.now_ms() + delta_ms
        while True:
            due = [t for t in self.pending if t.due <= target]
            if not due:
                break
            task = min(due, key=lambda t: t.due)
            self.clock.set(max(self.clock.now_ms(), task.due))
            task.fired = True
            task.callback()
        self.clock.set(target)


@pytest.fixture
def dummy_mcp():
    return DummyMCP()


@pytest.fixture
def clock():
    return ManualClock(start_ms=0)


@pytest.fixture
def scheduler(clock):
    return FakeScheduler(clock)
