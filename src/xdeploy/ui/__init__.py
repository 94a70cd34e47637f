"""UI package exports for the CLI and its plain-text views."""

from xdeploy.ui.cli import CLIError, build_parser, run_cli

__all__ = [
    "CLIError",
    "build_parser",
    "run_cli",
]
