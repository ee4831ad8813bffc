"""Allow running the CLI with ``python -m beacon``."""

from .cli import run

if __name__ == "__main__":
    run()
