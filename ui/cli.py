from __future__ import annotations

from nebula_installer.main import main as core_main


def main(argv: list[str] | None = None) -> int:
    # Thin front end; every option lives in the core entrypoint.
    return core_main(argv)


if __name__ == "__main__":
    raise SystemExit(main())
