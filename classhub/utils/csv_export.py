"""
CSV export helpers
"""

import csv
import io
from datetime import datetime
from typing import Any, Iterable, List, Sequence

from fastapi.responses import StreamingResponse


def rows_to_csv(headers: Sequence[str], rows: Iterable[Sequence[Any]]) -> str:
    """Render rows as CSV text with every field quoted"""
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(headers)
    for row in rows:
        writer.writerow(["" if value is None else value for value in row])
    return buffer.getvalue()


def csv_response(prefix: str, headers: List[str], rows: Iterable[Sequence[Any]]) -> StreamingResponse:
    """Stream CSV content as a dated attachment, e.g. programs_2025-01-31.csv"""
    content = rows_to_csv(headers, rows)
    filename = f"{prefix}_{datetime.utcnow().strftime('%Y-%m-%d')}.csv"
    return StreamingResponse(
        io.BytesIO(content.encode("utf-8")),
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename=\"{filename}\""}
    )
