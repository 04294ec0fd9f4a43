"""sketchloop CLI bootstrap."""

from __future__ import annotations

from sketchloop.cli import app

if __name__ == "__main__":
    app()
