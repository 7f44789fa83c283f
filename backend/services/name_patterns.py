from __future__ import annotations

import re
from typing import Any


def name_pattern(name: str) -> re.Pattern[str]:
    """Word-bounded matcher for an entity name: "Ann" matches "Ann" but not "Anna".

    Boundaries follow Python's ``\\b``, so a name that starts or ends with a
    non-word character (e.g. "R2-D2!") only matches where ``re`` sees a
    boundary next to it.
    """
    if not name:
        raise ValueError("name must be a non-empty string")
    return re.compile(r"\b" + re.escape(name) + r"\b")


def replace_name(text: str, pattern: re.Pattern[str], replacement: str) -> str:
    # callable replacement keeps backslashes in the new name literal
    return pattern.sub(lambda _m: replacement, text)


def rewrite_tree(node: Any, pattern: re.Pattern[str], replacement: str) -> bool:
    """Rewrite every matching string leaf of a JSON-shaped value in place.

    Only string leaves change; keys, list lengths and non-string scalars are
    left alone. Returns True when at least one leaf was rewritten. A bare
    string root cannot be rewritten in place, use ``replace_name`` for that.
    """
    changed = False
    if isinstance(node, dict):
        for key, value in node.items():
            if isinstance(value, str):
                updated = replace_name(value, pattern, replacement)
                if updated != value:
                    node[key] = updated
                    changed = True
            elif rewrite_tree(value, pattern, replacement):
                changed = True
    elif isinstance(node, list):
        for i, value in enumerate(node):
            if isinstance(value, str):
                updated = replace_name(value, pattern, replacement)
                if updated != value:
                    node[i] = updated
                    changed = True
            elif rewrite_tree(value, pattern, replacement):
                changed = True
    return changed


def rewrite_fields(doc: dict[str, Any], fields: list[str] | tuple[str, ...], pattern: re.Pattern[str], replacement: str) -> int:
    """Rewrite the named string fields of one object; returns how many changed."""
    touched = 0
    for f in fields:
        value = doc.get(f)
        if isinstance(value, str) and value:
            updated = replace_name(value, pattern, replacement)
            if updated != value:
                doc[f] = updated
                touched += 1
    return touched


def replace_member(items: list[Any], old: str, new: str) -> bool:
    """Exact-equality rename inside a list of names.

    Entries equal to ``old`` become ``new``; when ``new`` is already listed the
    old entries are dropped instead so the list does not end up with the same
    name twice. Substrings are never considered.
    """
    if old not in items:
        return False
    if new in items:
        items[:] = [x for x in items if x != old]
    else:
        items[:] = [new if x == old else x for x in items]
    return True
