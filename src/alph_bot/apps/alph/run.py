"""CLI entry point for the alph trading agent.

All command logic lives in the cli subpackage.
"""

from alph_bot.apps.alph.cli import app

__all__ = ["app", "main"]


def main() -> None:
    """Run the alph CLI application."""
    app()


if __name__ == "__main__":
    main()
