"""Output helpers shared by the trakt-sync CLI."""

from __future__ import annotations

import json
import sys
from enum import Enum
from typing import Any, Mapping, NoReturn

from pydantic import BaseModel


def to_serializable(value: Any) -> Any:
    """Turn models, enums and containers into plain JSON values; ``None`` fields are dropped."""

    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", exclude_none=True)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Mapping):
        return {str(key): to_serializable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [to_serializable(item) for item in value]
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    return str(value)


def print_json(payload: Any) -> None:
    print(json.dumps(to_serializable(payload), indent=2, sort_keys=True, ensure_ascii=False))


def exit_with_error(message: str, *, code: int = 1) -> NoReturn:
    sys.stderr.write(f"trakt-sync: {message}\n")
    raise SystemExit(code)
