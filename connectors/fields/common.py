"""
Helpers shared by the per-backend field mappings.
"""

from typing import Any, List, Optional, TypeVar

from connectors.exceptions import UnexpectedResponseContractException

T = TypeVar("T")

_MISSING = object()


def _lookup(data: Any, key: str) -> Any:
    current = data
    for part in key.split("."):
        if not isinstance(current, dict) or part not in current:
            return _MISSING
        current = current[part]
    return current


def require(data: Any, key: str, kind=str) -> Any:
    """
    Read a mandatory field, following dotted paths into nested objects.

    ``bool`` is never accepted where an ``int`` is required.

    :param data: Decoded JSON object.
    :param key: Field name, e.g. ``"author.username"``.
    :param kind: Expected Python type (or tuple of types).
    :raises UnexpectedResponseContractException: If absent, null or mistyped.
    """
    value = _lookup(data, key)
    if value is _MISSING or value is None:
        raise UnexpectedResponseContractException(
            f"Missing required field '{key}' in response: {data!r}"
        )
    if (kind is int and isinstance(value, bool)) or not isinstance(value, kind):
        raise UnexpectedResponseContractException(
            f"Field '{key}' expected {getattr(kind, '__name__', kind)}, "
            f"got {type(value).__name__}"
        )
    return value


def optional(data: Any, key: str, default: Any = "") -> Any:
    """Read an optional field; absent or null gives ``default``."""
    value = _lookup(data, key)
    if value is _MISSING or value is None:
        return default
    return value


def map_page(
    body: Any,
    fields,
    sub_array: Optional[str] = None,
) -> List[T]:
    """
    Fold a page of JSON records into domain entities.

    :param body: Decoded JSON body of one page.
    :param fields: Backend fields class with a ``from_json`` constructor.
    :param sub_array: Name of the array inside an object body, if the
        records are not the body itself.
    :return: Entities in the order they appear in the page.
    """
    records = body
    if sub_array is not None:
        records = body.get(sub_array) if isinstance(body, dict) else None
        if not isinstance(records, list):
            raise UnexpectedResponseContractException(
                f"Expected an array of {sub_array} but got: {body!r}"
            )
    elif not isinstance(records, list):
        raise UnexpectedResponseContractException(
            f"Expected a JSON array but got: {body!r}"
        )

    entities = []
    for record in records:
        entities.append(fields.from_json(record).to_entity())
    return entities
