from __future__ import annotations

from collections.abc import Iterable

try:  # optional dependency
    import pyarrow as pa  # type: ignore[reportMissingImports]
    import pyarrow.parquet as pq  # type: ignore[reportMissingImports]
except Exception:  # pragma: no cover
    pa = None  # type: ignore
    pq = None  # type: ignore

from langpulse.core.models import LanguageReport
from langpulse.render import report_rows

_COLUMNS = ("language", "repo", "rank", "path", "score")


def write_reports_parquet(reports: Iterable[LanguageReport], out_path: str) -> int:
    """One row per (language, repo, top file); returns the row count."""
    if pa is None or pq is None:
        raise RuntimeError("pyarrow is not installed. pip install 'langpulse[exporters-parquet]'")
    rows = [row for report in reports for row in report_rows(report)]
    table = pa.table({col: [r[col] for r in rows] for col in _COLUMNS})
    pq.write_table(table, out_path)
    return len(rows)
