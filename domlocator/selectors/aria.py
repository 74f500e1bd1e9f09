# domlocator/selectors/aria.py
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

from domlocator.errors import UnknownAriaAttributeError

_ATTRIBUTE_RE = re.compile(
    r"""\[\s*(?P<attribute>\w+)\s*=\s*(?P<quote>"|')(?P<value>\\.|.*?(?=(?P=quote)))(?P=quote)\s*\]"""
)
_KNOWN_ATTRIBUTES = ("name", "role")


@dataclass
class AriaQueryOptions:
    name: Optional[str] = None
    role: Optional[str] = None


def parse_aria_selector(selector: str) -> AriaQueryOptions:
    """
    Split an ``aria/`` selector body into accessible name and role:

    - "Submit"                          → name="Submit"
    - "Submit[role=\"button\"]"         → name="Submit", role="button"
    - "ignored[name='Submit'][role=x]" → explicit name wins over the bare text

    The bare text is kept verbatim (whitespace included) because accessible
    name matching is exact.
    """
    options = AriaQueryOptions()

    def _consume(match: re.Match) -> str:
        attribute = match.group("attribute")
        if attribute not in _KNOWN_ATTRIBUTES:
            raise UnknownAriaAttributeError(attribute)
        setattr(options, attribute, match.group("value"))
        return ""

    default_name = _ATTRIBUTE_RE.sub(_consume, selector)
    if default_name and not options.name:
        options.name = default_name
    return options


__all__ = ["AriaQueryOptions", "parse_aria_selector"]
