"""Attribute text for arrayed block instances."""

from dataclasses import dataclass
from typing import Dict, Iterable

# Tags containing any of these (case-insensitive) receive the instance number
NUMBERED_TAG_MARKERS = ("NUM", "ID")


@dataclass(frozen=True)
class AttributeField:
    """Attribute definition of a block (ATTDEF)."""
    tag: str
    is_constant: bool = False
    default_text: str = ""


def is_numbered_tag(tag: str) -> bool:
    upper = tag.upper()
    return any(marker in upper for marker in NUMBERED_TAG_MARKERS)


def resolve_attributes(
    fields: Iterable[AttributeField],
    instance_ordinal: int,
) -> Dict[str, str]:
    """Attribute values for one instance.

    Numbered tags get the 1-based ordinal padded to at least two digits
    ("01", "07", "123"); other tags keep their default text. Constant fields
    are skipped.
    """
    resolved: Dict[str, str] = {}
    for attr in fields:
        if attr.is_constant:
            continue
        if is_numbered_tag(attr.tag):
            resolved[attr.tag] = f"{instance_ordinal:02d}"
        else:
            resolved[attr.tag] = attr.default_text
    return resolved
