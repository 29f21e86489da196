"""CLI entry point.

Allows running the CLI as a module: python -m lastpost.cli
"""

from lastpost.cli import app

if __name__ == "__main__":
    app()
