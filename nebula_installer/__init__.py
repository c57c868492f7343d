"""Nebula OS Installer engine.

Core design goals:
- Strictly ordered steps, abort on first failure
- Every machine side effect goes through an external program
- Installer progress never depends on a UI being attached
- Optional work is best-effort; teardown is retried, never fatal
- Centralized logging
"""

__version__ = "0.4.0"

__all__ = ["__version__"]
