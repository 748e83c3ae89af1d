"""Allow ``python -m ingestbridge``."""

from ingestbridge.cli.app import app

if __name__ == "__main__":
    app()
