from __future__ import annotations

from roastcore.cli import app


if __name__ == "__main__":
    app()
