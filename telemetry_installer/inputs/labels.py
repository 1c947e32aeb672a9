# Path and File Name : /home/elven/telemetry-installer/telemetry_installer/inputs/labels.py
# Author: Elven Observability
# Details of functionality of this file: Parses key=value custom label lists with last-write-wins duplicate handling

"""
Custom label parsing.

`CUSTOM_LABELS="team=payments,region=sa-east-1"` or repeated interactive
entries. A key given twice keeps its LAST value ("a=1,b=2,a=3" gives
{a: 3, b: 2}); this is documented behaviour, not an error.
"""

import re
from typing import Dict, Iterable, Optional, Tuple

from ..errors import ValidationError
from ..models import PROTECTED_LABEL_KEYS

LABEL_KEY_PATTERN = re.compile(r'^[a-zA-Z_][a-zA-Z0-9_]*$')


def parse_label_pair(item: str) -> Tuple[str, str]:
    """
    Parse one `key=value` entry. The value may itself contain '='.

    Raises:
        ValidationError: Missing '=', invalid key, empty value or protected key
    """
    if '=' not in item:
        raise ValidationError(f"Invalid label '{item}': expected key=value")
    key, value = item.split('=', 1)
    key = key.strip()
    value = value.strip()
    if not LABEL_KEY_PATTERN.match(key):
        raise ValidationError(
            f"Invalid label key '{key}': must match {LABEL_KEY_PATTERN.pattern}"
        )
    if not value:
        raise ValidationError(f"Label '{key}' has an empty value")
    if key in PROTECTED_LABEL_KEYS:
        raise ValidationError(
            f"Label '{key}' is set by the installer and cannot be overridden",
            remediation=f"Protected keys: {', '.join(sorted(PROTECTED_LABEL_KEYS))}",
        )
    return key, value


def merge_labels(pairs: Iterable[Tuple[str, str]], base: Optional[Dict[str, str]] = None) -> Dict[str, str]:
    """Fold pairs into a dict; later keys overwrite earlier ones."""
    labels = dict(base or {})
    for key, value in pairs:
        labels[key] = value
    return labels


def parse_custom_labels(text: Optional[str]) -> Dict[str, str]:
    """Parse a comma-separated `key=value` list. Empty items are ignored."""
    if not text or not text.strip():
        return {}
    items = [item for item in text.split(',') if item.strip()]
    return merge_labels(parse_label_pair(item) for item in items)
