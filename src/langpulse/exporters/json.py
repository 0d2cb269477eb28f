from __future__ import annotations

import json
import sys
from typing import Any

from pydantic import BaseModel

from langpulse.core.models import LanguageReport
from langpulse.render import report_to_dict


def _jsonable(data: Any) -> Any:
    if isinstance(data, LanguageReport):
        return report_to_dict(data)
    if isinstance(data, BaseModel):
        return data.model_dump(mode="json")
    if isinstance(data, (list, tuple)):
        return [_jsonable(d) for d in data]
    if isinstance(data, dict):
        return {k: _jsonable(v) for k, v in data.items()}
    return data


def write_json(data: Any, out: str = "-") -> None:
    """Write reports, models or plain data as indented JSON to a path or ``-``."""
    buf = json.dumps(_jsonable(data), ensure_ascii=False, indent=2, default=str)
    if out == "-":
        sys.stdout.write(buf + "\n")
    else:
        with open(out, "w", encoding="utf-8") as f:
            f.write(buf + "\n")
