"""CSV export of session results."""

import csv
import io
from datetime import date
from pathlib import Path
from typing import Iterable, Optional

import structlog

from lastpost.models.session import ItemResult

logger = structlog.get_logger()

CSV_HEADER = ["Username", "Post Date"]


def default_export_name(today: Optional[date] = None) -> str:
    today = today or date.today()
    return f"instagram_results_{today.isoformat()}.csv"


def results_to_csv(results: Iterable[ItemResult]) -> str:
    """Render results as CSV text in processing order.

    Fields are quoted when needed, so values containing commas survive.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for result in results:
        writer.writerow([result.identifier, result.value])
    return buffer.getvalue()


def export_results(results: Iterable[ItemResult], output_path: Path) -> Path:
    """Write results to ``output_path`` atomically and return the path"""
    output_path = Path(output_path)
    rows = list(results)

    output_path.parent.mkdir(parents=True, exist_ok=True)
    temp_path = output_path.with_suffix(output_path.suffix + ".tmp")
    temp_path.write_text(results_to_csv(rows), encoding="utf-8")
    temp_path.replace(output_path)

    logger.info("results_exported", path=str(output_path), rows=len(rows))
    return output_path
