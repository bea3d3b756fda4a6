"""Entry point for `python -m preflight_cli` and `preflight` console script."""

from __future__ import annotations

from preflight_cli.app import app


def main() -> None:
    app()


if __name__ == "__main__":
    main()
