"""Identifier list loading.

Reads the plain inputs the checker accepts:
- .txt: one identifier per line
- .csv: the first column of each line

Lines are trimmed and blank entries dropped. Order and duplicates are
preserved as found.
"""

from pathlib import Path
from typing import List

import structlog

from lastpost.utils.exceptions import InputError

logger = structlog.get_logger()

SUPPORTED_SUFFIXES = {".txt", ".csv"}


def parse_identifiers(content: str, csv_mode: bool = False) -> List[str]:
    identifiers = []
    for line in content.splitlines():
        value = line.split(",")[0] if csv_mode else line
        value = value.strip()
        if value:
            identifiers.append(value)
    return identifiers


def load_identifiers(path: Path) -> List[str]:
    """Load identifiers from a .txt or .csv file

    Raises:
        InputError: Unsupported extension, unreadable file, or no identifiers
    """
    path = Path(path)
    suffix = path.suffix.lower()

    if suffix not in SUPPORTED_SUFFIXES:
        raise InputError(f"Please provide a CSV or TXT file (got '{path.name}')")

    try:
        content = path.read_text(encoding="utf-8-sig")
    except OSError as e:
        raise InputError(f"Cannot read {path}: {e}")

    identifiers = parse_identifiers(content, csv_mode=(suffix == ".csv"))
    if not identifiers:
        raise InputError(f"No valid usernames found in {path.name}")

    logger.info("identifiers_loaded", path=str(path), count=len(identifiers))
    return identifiers
