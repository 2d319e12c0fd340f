from __future__ import annotations  # Shared helpers for the reasoning pipelines

import json
import math
import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Type, TypeVar

from pydantic import BaseModel, ValidationError

from config.registry import get_model
from llm_gateway import ReasoningCall

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def as_number(value: Any) -> Optional[float]:  # Finite numeric value or None; booleans are not numbers
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        return None
    try:
        number = float(value.strip() if isinstance(value, str) else value)
    except (ValueError, OverflowError):
        return None
    return number if math.isfinite(number) else None


def clean_text(value: Any) -> str:
    if value is None or isinstance(value, (dict, list)):
        return ""
    return str(value).strip()


def clean_strings(values: Iterable[Any], limit: Optional[int] = None) -> List[str]:
    cleaned = [clean_text(item) for item in values]
    cleaned = [item for item in cleaned if item]
    return cleaned if limit is None else cleaned[:limit]


def to_json(value: Any) -> str:  # Compact JSON for prompt variables
    if isinstance(value, BaseModel):
        value = value.model_dump(mode="json")
    elif isinstance(value, (list, tuple)):
        value = [item.model_dump(mode="json") if isinstance(item, BaseModel) else item for item in value]
    return json.dumps(value, ensure_ascii=False, default=str)


def valid_items(raw: Sequence[Any], schema: Type[M], *, bounds: Optional[Mapping[str, tuple]] = None, limit: Optional[int] = None) -> List[M]:
    """Validate list entries one by one, dropping the ones that do not fit ``schema``.

    Numeric fields named in ``bounds`` are clamped into range before validation;
    an entry whose bounded field is not a finite number is dropped.
    """

    items: List[M] = []
    for entry in raw:
        if not isinstance(entry, Mapping):
            continue
        payload = dict(entry)
        usable = True
        for field, (low, high) in (bounds or {}).items():
            if field not in payload:
                continue
            number = as_number(payload[field])
            if number is None:
                usable = False
                break
            bounded = clamp(number, low, high)
            payload[field] = int(round(bounded)) if isinstance(low, int) and isinstance(high, int) else bounded
        if not usable:
            continue
        try:
            items.append(schema.model_validate(payload))
        except ValidationError:
            continue
    return items if limit is None else items[:limit]


def resolve_llm(llm: Optional[ReasoningCall], key: str) -> ReasoningCall:  # Explicit call wins over the registry
    if llm is not None:
        return llm
    return get_model(key)


def tail(items: Sequence[Any], size: int) -> List[Any]:
    if size <= 0:
        return []
    return list(items[-size:])


def transcript_lines(turns: Sequence[Any]) -> List[Dict[str, str]]:  # Map transcript turns to role/text dicts
    lines: List[Dict[str, str]] = []
    for turn in turns:
        role = getattr(turn, "role", None) or (turn.get("role") if isinstance(turn, Mapping) else "")
        text = getattr(turn, "text", None) or (turn.get("text") if isinstance(turn, Mapping) else "")
        text = clean_text(text)
        if text:
            lines.append({"role": str(role or "candidate"), "text": text})
    return lines


__all__ = [
    "as_number",
    "clamp",
    "clean_strings",
    "clean_text",
    "resolve_llm",
    "tail",
    "to_json",
    "transcript_lines",
    "valid_items",
]
