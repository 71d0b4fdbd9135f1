"""
Query string encoding for the data selector form.

The data selector rejects form-encoded POST bodies, so every wizard step is
sent as a GET with a hand-built query string. Multi-select fields use PHP's
array convention (``name[]=a&name[]=b``).
"""

from typing import Any, List, Mapping, Union

Scalar = Union[str, int, float, bool, None]

_SCALAR_TYPES = (str, int, float, bool)


def _render_scalar(key: str, value: Any) -> str:
    if value is None:
        return ""
    if not isinstance(value, _SCALAR_TYPES):
        raise TypeError(
            f"Unsupported value for query field '{key}': {type(value).__name__}"
        )
    return str(value)


def to_query_string(fields: Mapping[str, Any]) -> str:
    """
    Encode form fields as the data selector expects them.

    Scalars render as ``name=value``; lists and tuples render as one
    ``name[]=element`` pair per element. Field and element order is preserved.
    Values are not URL-escaped.

    Args:
        fields: Mapping of field name to a scalar or a list/tuple of scalars

    Returns:
        The ``&``-joined query string

    Raises:
        TypeError: If a value is neither a scalar nor a flat list/tuple of scalars

    Example:
        >>> to_query_string({"f_query_id": 12, "f_site_id": ["ABD1"]})
        'f_query_id=12&f_site_id[]=ABD1'
    """
    parts: List[str] = []
    for key, value in fields.items():
        if isinstance(value, (list, tuple)):
            for element in value:
                parts.append(f"{key}[]={_render_scalar(key, element)}")
        else:
            parts.append(f"{key}={_render_scalar(key, value)}")
    return "&".join(parts)
