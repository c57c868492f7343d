import pytest

from nebula_installer.errors import BestEffortExhausted, CommandError, RetryExhausted
from nebula_installer.lib.policies import FailureReport, best_effort, bounded_retry
from nebula_installer.model import LogEvent


def _texts(channel):
    return [e.text for e in channel.receiver().drain() if isinstance(e, LogEvent)]


class FlakyInstaller:
    """Fails any batch containing one of the bad items."""

    def __init__(self, bad):
        self.bad = set(bad)
        self.calls = []

    def __call__(self, batch):
        self.calls.append(list(batch))
        broken = [i for i in batch if i in self.bad]
        if broken:
            raise CommandError(f"pacman -S {' '.join(batch)}", 1)


def test_best_effort_batch_success_runs_once():
    op = FlakyInstaller(bad=[])
    report = best_effort(["a", "b", "c"], op, fatal=False)
    assert report.ok
    assert op.calls == [["a", "b", "c"]]


def test_best_effort_collects_exactly_the_failed_item(channel, sender):
    op = FlakyInstaller(bad=["c"])
    report = best_effort(["a", "b", "c", "d", "e"], op, fatal=False, sender=sender)

    assert report.items == ["c"]
    assert op.calls == [["a", "b", "c", "d", "e"], ["a"], ["b"], ["c"], ["d"], ["e"]]

    texts = _texts(channel)
    assert texts[0] == "Optional package batch failed. Retrying individually..."
    assert texts[1].startswith("Optional package failed: c (Command failed: pacman -S c")


def test_best_effort_fatal_raises_only_when_all_fail():
    report = best_effort(["a", "b"], FlakyInstaller(bad=["a"]), fatal=True)
    assert report.items == ["a"]

    with pytest.raises(BestEffortExhausted) as exc_info:
        best_effort(["a", "b"], FlakyInstaller(bad=["a", "b"]), fatal=True)
    assert exc_info.value.items == ["a", "b"]


def test_best_effort_non_fatal_all_fail_returns_report():
    report = best_effort(["a", "b"], FlakyInstaller(bad=["a", "b"]), fatal=False)
    assert report.items == ["a", "b"]
    assert not report.ok


def test_best_effort_empty_input_skips_operation():
    op = FlakyInstaller(bad=[])
    assert best_effort([], op, fatal=True).ok
    assert op.calls == []


def test_failure_report_render():
    report = FailureReport(items=["yay", "discord"])
    assert report.render() == "Failed optional packages:\nyay\ndiscord\n"


class Counter:
    def __init__(self, succeed_on=None):
        self.calls = 0
        self.succeed_on = succeed_on

    def __call__(self):
        self.calls += 1
        if self.succeed_on is None or self.calls < self.succeed_on:
            raise CommandError("cryptsetup close cryptroot", 5)


def test_bounded_retry_non_fatal_exhaustion(channel, sender):
    op = Counter()
    sleeps = []
    diagnostics = []

    ok = bounded_retry(
        op,
        fatal=False,
        description="cryptsetup close",
        diagnostics=lambda: diagnostics.append(op.calls),
        sender=sender,
        sleep=sleeps.append,
    )

    assert ok is False
    assert op.calls == 5
    assert sleeps == [0.25] * 4
    assert diagnostics == [1, 2, 3, 4, 5]

    texts = _texts(channel)
    assert texts[0] == "cryptsetup close failed (attempt 1/5): Command failed: cryptsetup close cryptroot"
    assert texts[4].startswith("cryptsetup close failed (attempt 5/5)")
    assert texts[-1].startswith("Warning: cryptsetup close")


def test_bounded_retry_stops_on_success():
    op = Counter(succeed_on=3)
    sleeps = []
    assert bounded_retry(op, fatal=True, description="op", sleep=sleeps.append) is True
    assert op.calls == 3
    assert sleeps == [0.25, 0.25]


def test_bounded_retry_fatal_raises():
    op = Counter()
    with pytest.raises(RetryExhausted) as exc_info:
        bounded_retry(op, fatal=True, description="op", attempts=2, delay=0.0, sleep=lambda s: None)
    assert exc_info.value.attempts == 2
    assert isinstance(exc_info.value.last_error, CommandError)


def test_bounded_retry_diagnostics_errors_are_swallowed():
    def broken_diagnostics():
        raise OSError("no dmsetup")

    op = Counter(succeed_on=2)
    assert bounded_retry(op, fatal=True, description="op", diagnostics=broken_diagnostics, sleep=lambda s: None)


def test_bounded_retry_rejects_zero_attempts():
    with pytest.raises(ValueError):
        bounded_retry(lambda: None, fatal=False, description="op", attempts=0)
