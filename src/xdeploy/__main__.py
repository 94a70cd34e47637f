"""Module entrypoint for ``python -m xdeploy``."""

from __future__ import annotations

from xdeploy.main import cli_entrypoint

if __name__ == "__main__":
    raise SystemExit(cli_entrypoint())
