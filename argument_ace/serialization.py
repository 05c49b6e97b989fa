"""Strict conversion between records and JSON-shaped data.

Uses pydantic ``TypeAdapter`` over the plain dataclasses in models.py, so
the same types serve the service boundary and the persisted store.
"""

import re
from functools import lru_cache
from typing import Any, TypeVar

from pydantic import TypeAdapter

from argument_ace.models import DebateSession, TimerState

T = TypeVar("T")

_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


@lru_cache(maxsize=None)
def _adapter(record_type: type) -> TypeAdapter:
    return TypeAdapter(record_type)


def extract_json(text: str) -> str:
    """Strip markdown fences and surrounding chatter from a model reply.

    Returns the span from the first ``{`` to the last ``}``, or the
    stripped text unchanged when there is no object in it.
    """
    cleaned = _FENCE_RE.sub("", text.strip())
    start, end = cleaned.find("{"), cleaned.rfind("}")
    if start == -1 or end < start:
        return cleaned
    return cleaned[start:end + 1]


def parse_payload(text: str, record_type: type[T]) -> T:
    """Validate a model reply into ``record_type``.

    Raises:
        pydantic.ValidationError: If the reply is not valid JSON of that shape.
    """
    return _adapter(record_type).validate_json(extract_json(text))


def to_record(value: Any) -> dict[str, Any]:
    return _adapter(type(value)).dump_python(value, mode="json")


def session_to_record(session: DebateSession) -> dict[str, Any]:
    return to_record(session)


def session_from_record(record: dict[str, Any]) -> DebateSession:
    return _adapter(DebateSession).validate_python(record)


def timer_state_from_record(record: dict[str, Any]) -> TimerState:
    return _adapter(TimerState).validate_python(record)
