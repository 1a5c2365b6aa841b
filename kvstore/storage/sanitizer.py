"""
Key sanitization for documents written to MongoDB.

MongoDB does not accept field names containing "." or starting with "$".
The replacements are applied to the persisted copy only; in-memory keys
keep their original spelling.
"""

import re
from collections.abc import Mapping
from typing import Any, Optional


DOT_PATTERN = re.compile(r"\.")
LEADING_DOLLAR_PATTERN = re.compile(r"^\$")


def replace_key_of_hash(value: Any, pattern: re.Pattern[str], replacement: str) -> Any:
    """
    Rewrite every mapping key matching `pattern`, descending into
    nested mappings and lists.
    """
    if isinstance(value, (list, tuple)):
        return [replace_key_of_hash(item, pattern, replacement) for item in value]

    if isinstance(value, Mapping):
        result = {}
        for key, item in value.items():
            if isinstance(key, str):
                key = pattern.sub(lambda _match: replacement, key)
            if isinstance(item, (Mapping, list, tuple)):
                result[key] = replace_key_of_hash(item, pattern, replacement)
            else:
                result[key] = item
        return result

    return value


def sanitize_keys(
    value: Any,
    dot_replacement: Optional[str] = None,
    dollar_replacement: Optional[str] = None,
) -> Any:
    """
    Apply the configured key replacements to a record.

    Args:
        value: Record to sanitize (mapping, list or scalar)
        dot_replacement: Substitute for every "." in a key
        dollar_replacement: Substitute for a leading "$" in a key

    Returns:
        The sanitized copy, or `value` itself when nothing is configured
    """
    if dot_replacement is not None:
        value = replace_key_of_hash(value, DOT_PATTERN, dot_replacement)
    if dollar_replacement is not None:
        value = replace_key_of_hash(value, LEADING_DOLLAR_PATTERN, dollar_replacement)
    return value
