"""
Normalization of WHO ICD-API entity JSON into ICDEntity.

The API is not consistent about field shapes. Depending on release and
linearization, a field may be:
  - a plain string, or a localized object such as {"@language": "en", "@value": "Cholera"}
  - a single URI string, or a list of URIs (parent / child)
  - a list of strings, or a list of {"label": ...} objects (inclusion / exclusion)

Fallback order for localized fields: the "@value" sub-field, then "value",
then (for titles and list items only) the JSON dump of the whole object.
Anything that still resolves to nothing is left as None.
"""

import json
from typing import Any, Optional

from .models import ICDEntity

_VALUE_KEYS = ("@value", "value")


def _unwrap(value: Any) -> Optional[str]:
    """Return the text inside a localized object, or None if there is none."""
    if isinstance(value, dict):
        for key in _VALUE_KEYS:
            inner = value.get(key)
            if inner:
                return str(inner)
        return None
    if value is None or value == "":
        return None
    return str(value)


def _title(value: Any) -> str:
    if isinstance(value, dict):
        return _unwrap(value) or json.dumps(value)
    return _unwrap(value) or ""


def _label_list(items: Any) -> Optional[list[str]]:
    if not isinstance(items, list):
        return None

    labels = []
    for item in items:
        if isinstance(item, dict):
            labels.append(_unwrap(item.get("label")) or json.dumps(item))
        else:
            labels.append(str(item))
    return labels


def _first_uri(value: Any) -> Optional[str]:
    if isinstance(value, list):
        return str(value[0]) if value else None
    if isinstance(value, str) and value:
        return value
    return None


def _uri_list(value: Any) -> Optional[list[str]]:
    if isinstance(value, list):
        return [str(v) for v in value]
    if isinstance(value, str) and value:
        return [value]
    return None


def parse_entity(data: dict) -> ICDEntity:
    """Build an ICDEntity from a raw ICD-API entity response."""
    code = data.get("code") or data.get("theCode") or data.get("codeRange") or ""

    return ICDEntity(
        code=str(code),
        title=_title(data.get("title")),
        definition=_unwrap(data.get("definition")),
        long_definition=_unwrap(data.get("longDefinition")),
        inclusions=_label_list(data.get("inclusion") or data.get("indexTerm")),
        exclusions=_label_list(data.get("exclusion")),
        coding_note=_unwrap(data.get("codingNote")),
        parent=_first_uri(data.get("parent")),
        children=_uri_list(data.get("child")),
        uri=data.get("@id") or data.get("id") or None,
        class_kind=data.get("classKind") or None,
        browser_url=data.get("browserUrl") or None,
    )
