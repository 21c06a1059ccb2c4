import csv
import io
from datetime import date
from typing import Iterable, Sequence

from fastapi.responses import StreamingResponse


def rows_to_csv(columns: Sequence[tuple[str, str]], rows: Iterable[dict]) -> str:
    """
    Renders rows as CSV. `columns` pairs a header label with the row key to read;
    every field is quoted, matching what the dashboards exported.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow([label for label, _ in columns])
    for row in rows:
        writer.writerow(["" if row.get(key) is None else row.get(key) for _, key in columns])
    return buffer.getvalue()


def csv_response(prefix: str, columns: Sequence[tuple[str, str]], rows: Iterable[dict]) -> StreamingResponse:
    filename = f"{prefix}-{date.today().isoformat()}.csv"
    return StreamingResponse(
        iter([rows_to_csv(columns, rows)]),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
