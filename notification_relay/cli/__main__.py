"""CLI entry point.

Allows running the CLI as a module: python -m notification_relay.cli
"""

from notification_relay.cli import app

if __name__ == "__main__":
    app()
