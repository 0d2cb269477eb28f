from __future__ import annotations

from .json import write_json
from .parquet import write_reports_parquet

__all__ = ["write_json", "write_reports_parquet"]
