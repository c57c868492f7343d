from __future__ import annotations

import argparse
import dataclasses
import logging
import threading
from typing import Callable, Optional, Sequence, Tuple

from .config import InstallConfig
from .config_store import load_install_config
from .errors import StepFailed
from .event_log import EventLogWriter, format_event
from .events import EventChannel, EventReceiver, EventSender
from .lib.command import HEARTBEAT_INTERVAL_S
from .lib.env import PATHS, Paths
from .lib.runner import CommandRunner
from .logging_utils import DEFAULT_LOG_PATH, configure_logging
from .model import DoneEvent
from .pipeline import InstallCtx, InstallStep, run_pipeline
from .steps import (
    ConfigureSwapStep,
    ConfigureSystemStep,
    CreateFilesystemsStep,
    EncryptDiskStep,
    FinalizeStep,
    GenerateFstabStep,
    InstallBaseSystemStep,
    InstallBootloaderStep,
    InstallPackagesStep,
    MountFilesystemsStep,
    PartitionDiskStep,
)

logger = logging.getLogger(__name__)

RunnerFactory = Callable[[EventSender], CommandRunner]


def build_steps() -> list[InstallStep]:
    return [
        PartitionDiskStep(),
        EncryptDiskStep(),
        CreateFilesystemsStep(),
        MountFilesystemsStep(),
        ConfigureSwapStep(),
        InstallBaseSystemStep(),
        GenerateFstabStep(),
        ConfigureSystemStep(),
        InstallPackagesStep(),
        InstallBootloaderStep(),
        FinalizeStep(),
    ]


def start_installer_thread(
    config: InstallConfig,
    *,
    paths: Paths = PATHS,
    steps: Optional[Sequence[InstallStep]] = None,
    runner_factory: Optional[RunnerFactory] = None,
    heartbeat_interval: float = HEARTBEAT_INTERVAL_S,
) -> Tuple[threading.Thread, EventReceiver]:
    """Run the pipeline on a worker thread and hand back the event receiver."""

    channel = EventChannel()
    sender = channel.sender()
    pipeline_steps = list(steps) if steps is not None else build_steps()

    if runner_factory is None:
        def runner_factory(s: EventSender) -> CommandRunner:
            return CommandRunner(
                s,
                target_root=paths.target_root,
                dry_run=config.dry_run,
                heartbeat_interval=heartbeat_interval,
            )

    ctx = InstallCtx(config=config, runner=runner_factory(sender), paths=paths)

    def worker() -> None:
        try:
            run_pipeline(ctx=ctx, steps=pipeline_steps)
        except StepFailed as e:
            logger.error("Install failed at %s: %s", e.name, e)
        except Exception:
            logger.exception("Installer thread crashed")
        finally:
            sender.close()

    thread = threading.Thread(target=worker, name="nebula-installer", daemon=True)
    thread.start()
    return thread, channel.receiver()


def run(
    config: InstallConfig,
    *,
    paths: Paths = PATHS,
    quiet: bool = False,
    event_log_path: Optional[str] = None,
) -> bool:
    """Install and print the event stream. Returns True on success."""

    step_names = [s.name for s in build_steps()]
    writer = EventLogWriter(event_log_path or paths.tmp_log, step_names)
    thread, receiver = start_installer_thread(config, paths=paths)

    ok = False
    try:
        for event in receiver:
            writer.handle(event)
            if not quiet:
                for line in format_event(event, step_names):
                    print(line, flush=True)
            if isinstance(event, DoneEvent):
                ok = event.ok
    finally:
        thread.join()
        receiver.close()
    return ok


def main(argv: Optional[list[str]] = None) -> int:
    p = argparse.ArgumentParser(prog="nebula-installer")
    p.add_argument("--config", required=True, help="Path to install config (json|yaml)")
    p.add_argument("--log", default=DEFAULT_LOG_PATH, help="Path to debug log")
    p.add_argument("--dry-run", action="store_true", help="Log commands without running them")
    p.add_argument("--quiet", action="store_true", help="Do not echo installer events")

    args = p.parse_args(argv)

    configure_logging(log_path=args.log, also_console=not args.quiet)

    try:
        config = load_install_config(args.config)
    except (OSError, ValueError, RuntimeError) as e:
        logger.error("Invalid config %s: %s", args.config, e)
        return 1
    if args.dry_run:
        config = dataclasses.replace(config, dry_run=True)

    return 0 if run(config, quiet=args.quiet) else 1


if __name__ == "__main__":
    raise SystemExit(main())
