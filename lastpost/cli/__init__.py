"""lastpost CLI Package.

Usage:
    python -m lastpost.cli run usernames.txt --min-delay 5 --max-delay 7
    python -m lastpost.cli session status
    python -m lastpost.cli session export results.csv
    python -m lastpost.cli session clear
    python -m lastpost.cli validate config/lastpost.yaml
"""

import typer

from lastpost.cli.run import run_command
from lastpost.cli.session import (
    clear_command,
    export_command,
    session_app,
    status_command,
)
from lastpost.cli.validate import validate_command

app = typer.Typer(help="lastpost: resumable latest-post-date checker")

app.command(name="run")(run_command)
app.command(name="validate")(validate_command)

app.add_typer(session_app, name="session")

__all__ = [
    "app",
    "run_command",
    "validate_command",
    "session_app",
    "status_command",
    "export_command",
    "clear_command",
]
