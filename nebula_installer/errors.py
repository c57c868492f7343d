from __future__ import annotations

from typing import Optional


class InstallerError(RuntimeError):
    """Base class for every error the installer raises on purpose."""


class SpawnError(InstallerError):
    """The external program could not be started."""

    def __init__(self, command: str, reason: str) -> None:
        super().__init__(f"Failed to spawn {command}: {reason}")
        self.command = command
        self.reason = reason


class CommandError(InstallerError):
    """The external program ran and exited non-zero."""

    def __init__(self, command: str, returncode: int, stderr: str = "") -> None:
        detail = stderr.strip()
        if detail:
            msg = f"Command failed: {command}\n{detail}"
        else:
            msg = f"Command failed: {command}"
        super().__init__(msg)
        self.command = command
        self.returncode = returncode
        self.stderr = stderr


class PreconditionError(InstallerError):
    """Required external state is missing; raised before destructive work."""


class CleanupWarning(InstallerError):
    """Best-effort cleanup gave up.

    Non-fatal policies log this instead of raising it.
    """


class BestEffortExhausted(InstallerError):
    """Every item of a fatal best-effort batch failed."""

    def __init__(self, description: str, items: list[str]) -> None:
        super().__init__(f"{description}: all items failed ({', '.join(items)})")
        self.items = list(items)


class RetryExhausted(InstallerError):
    """A fatal bounded retry ran out of attempts."""

    def __init__(self, description: str, attempts: int, last_error: Optional[BaseException]) -> None:
        super().__init__(f"{description} failed after {attempts} attempts: {last_error}")
        self.attempts = attempts
        self.last_error = last_error


class StepFailed(InstallerError):
    """Raised by the pipeline when a step aborts the install."""

    def __init__(self, index: int, name: str, error: BaseException) -> None:
        super().__init__(str(error))
        self.index = index
        self.name = name
        self.error = error
