from enum import Enum
from typing import Any, Dict, Type, TypeVar

from .errors import InvalidActionError

E = TypeVar("E", bound=Enum)


def success(**payload: Any) -> Dict[str, Any]:
    result: Dict[str, Any] = {"success": True}
    result.update(payload)
    return result


def failure(error: str, **payload: Any) -> Dict[str, Any]:
    result: Dict[str, Any] = {"success": False, "error": error}
    result.update(payload)
    return result


def parse_enum(enum_cls: Type[E], raw: Any, error_cls: Type[Exception] = InvalidActionError) -> E:
    """Accept an enum member, its value, or its name (any case)."""
    if isinstance(raw, enum_cls):
        return raw
    key = str(raw or "").strip()
    for member in enum_cls:
        if key.lower() in (member.value.lower(), member.name.lower()):
            return member
    raise error_cls(f"Unknown {enum_cls.__name__}: {raw}")
