"""Entry point for the pilot-tasks CLI.

Usage:
    python -m pilot_tasks.interfaces.cli.main

Or via installed entry point:
    pilot-tasks <command>
"""

from pilot_tasks.interfaces.cli import app


def main() -> None:
    """Run the CLI application."""
    app()


if __name__ == "__main__":
    main()
