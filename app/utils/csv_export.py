from __future__ import annotations

import csv
import io
from typing import Iterable, Iterator, Mapping

from fastapi.responses import StreamingResponse


def iter_csv(headers: list[str], rows: Iterable[Mapping[str, object]]) -> Iterator[str]:
    output = io.StringIO()
    writer = csv.DictWriter(output, fieldnames=headers, quoting=csv.QUOTE_MINIMAL)

    writer.writeheader()
    yield output.getvalue()
    output.seek(0)
    output.truncate(0)

    for row in rows:
        writer.writerow({h: "" if row.get(h) is None else str(row.get(h)) for h in headers})
        yield output.getvalue()
        output.seek(0)
        output.truncate(0)


def stream_csv(
    headers: list[str], rows: Iterable[Mapping[str, object]], filename: str = "export.csv"
) -> StreamingResponse:
    return StreamingResponse(
        iter_csv(headers, rows),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
