from __future__ import annotations

import codecs
import logging
import os
import shlex
import subprocess
import threading
from dataclasses import dataclass, field
from typing import IO, Iterator, List, Mapping, Optional, Sequence

from ..errors import CommandError, SpawnError
from ..events import EventSender
from .sanitize import sanitize_log_line

logger = logging.getLogger(__name__)

HEARTBEAT_INTERVAL_S = 10.0
_READ_SIZE = 4096


def _fmt_argv(argv: Sequence[str]) -> str:
    return " ".join(shlex.quote(a) for a in argv)


def _merged_env(env: Mapping[str, str] | None) -> dict[str, str]:
    return dict(os.environ, **(env or {}))


@dataclass(frozen=True)
class CommandSpec:
    """One external invocation."""

    program: str
    args: tuple[str, ...] = ()
    input_text: Optional[str] = field(default=None, repr=False)
    env: Optional[Mapping[str, str]] = None
    heartbeat: Optional[str] = None

    @classmethod
    def of(
        cls,
        argv: Sequence[str],
        *,
        input_text: Optional[str] = None,
        env: Optional[Mapping[str, str]] = None,
        heartbeat: Optional[str] = None,
    ) -> "CommandSpec":
        argv_list = list(argv)
        if not argv_list:
            raise ValueError("argv must not be empty")
        return cls(
            program=argv_list[0],
            args=tuple(argv_list[1:]),
            input_text=input_text,
            env=env,
            heartbeat=heartbeat,
        )

    @property
    def argv(self) -> list[str]:
        return [self.program, *self.args]

    @property
    def cmdline(self) -> str:
        return _fmt_argv(self.argv)


class LineSplitter:
    """Split streamed text into log lines.

    "\\n" and "\\r\\n" end a line. A bare "\\r" followed by anything else
    discards the line so far, which is how progress bars redraw.
    """

    def __init__(self) -> None:
        self._buf: List[str] = []
        self._pending_cr = False

    def feed(self, text: str) -> Iterator[str]:
        for ch in text:
            if self._pending_cr:
                self._pending_cr = False
                if ch == "\n":
                    yield self._take()
                    continue
                self._buf.clear()
            if ch == "\r":
                self._pending_cr = True
            elif ch == "\n":
                yield self._take()
            else:
                self._buf.append(ch)

    def finish(self) -> Iterator[str]:
        self._pending_cr = False
        if self._buf:
            yield self._take()

    def _take(self) -> str:
        line = "".join(self._buf)
        self._buf.clear()
        return line


def _stream_output(stream: IO[bytes], sender: EventSender) -> None:
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    splitter = LineSplitter()

    def emit(lines: Iterator[str]) -> None:
        for raw in lines:
            text = sanitize_log_line(raw)
            if text:
                sender.log(text)

    while True:
        try:
            chunk = os.read(stream.fileno(), _READ_SIZE)
        except (OSError, ValueError):
            break
        if not chunk:
            break
        emit(splitter.feed(decoder.decode(chunk)))

    emit(splitter.feed(decoder.decode(b"", final=True)))
    emit(splitter.finish())


def _heartbeat(sender: EventSender, message: str, stop: threading.Event, interval: float) -> None:
    sender.log(message)
    while not stop.wait(interval):
        sender.log(message)


def _feed_stdin(p: subprocess.Popen, input_text: Optional[str]) -> None:
    if p.stdin is None:
        return
    try:
        if input_text:
            p.stdin.write(input_text.encode("utf-8"))
            p.stdin.flush()
    except BrokenPipeError:
        # Child stopped reading; its exit status decides the outcome.
        logger.debug("stdin closed early by child pid=%s", p.pid)
    finally:
        try:
            p.stdin.close()
        except BrokenPipeError:
            pass


def run_command(
    sender: EventSender,
    spec: CommandSpec,
    *,
    dry_run: bool = False,
    heartbeat_interval: float = HEARTBEAT_INTERVAL_S,
) -> None:
    """Run a command and stream its output as log events.

    - stdout and stderr are read by two threads, line by line, sanitized.
    - an optional heartbeat thread repeats spec.heartbeat while the child runs.
    - every helper thread is joined before returning, so no event from this
      call arrives after it returns.
    """

    cmdline = spec.cmdline
    logger.info("CMD %s", cmdline)
    sender.log(f"$ {cmdline}")

    if dry_run:
        return

    try:
        p = subprocess.Popen(
            spec.argv,
            stdin=subprocess.PIPE,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            env=_merged_env(spec.env),
        )
    except OSError as e:
        raise SpawnError(cmdline, str(e)) from e

    stop = threading.Event()
    threads: list[threading.Thread] = []

    def start(target, *args) -> None:
        t = threading.Thread(target=target, args=args, daemon=True)
        t.start()
        threads.append(t)

    try:
        if spec.heartbeat:
            start(_heartbeat, sender, spec.heartbeat, stop, heartbeat_interval)
        start(_stream_output, p.stdout, sender)
        start(_stream_output, p.stderr, sender)
        _feed_stdin(p, spec.input_text)
        returncode = p.wait()
    finally:
        stop.set()
        for t in threads:
            t.join()
        for stream in (p.stdout, p.stderr):
            if stream is not None:
                stream.close()

    if returncode != 0:
        logger.info("Command exited %s: %s", returncode, cmdline)
        raise CommandError(cmdline, returncode)


def run_command_capture(
    sender: EventSender,
    spec: CommandSpec,
    *,
    dry_run: bool = False,
) -> str:
    """Run a command to completion and return its stdout."""

    cmdline = spec.cmdline
    logger.info("CMD %s", cmdline)
    sender.log(f"$ {cmdline}")

    if dry_run:
        return ""

    try:
        p = subprocess.run(
            spec.argv,
            input=spec.input_text,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            encoding="utf-8",
            errors="replace",
            env=_merged_env(spec.env),
        )
    except OSError as e:
        raise SpawnError(cmdline, str(e)) from e

    if p.stderr:
        logger.debug("STDERR %s", p.stderr.strip())

    if p.returncode != 0:
        raise CommandError(cmdline, p.returncode, p.stderr)

    return p.stdout


def run_command_status(argv: Sequence[str], *, dry_run: bool = False) -> int:
    """Run quietly and return the exit status. Output is discarded."""

    argv_list = list(argv)
    logger.info("CMD %s", _fmt_argv(argv_list))

    if dry_run:
        return 0

    try:
        p = subprocess.run(argv_list, stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL)
    except OSError as e:
        raise SpawnError(_fmt_argv(argv_list), str(e)) from e
    return p.returncode
