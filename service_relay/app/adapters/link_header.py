"""
Web-linking (RFC 8288) header parsing.

Only the pieces pagination needs are kept: each link's target and its
``rel`` relation types. Anything malformed raises LinkHeaderParseError
rather than being skipped, since a dropped link may mean dropped data.
"""

import re
from typing import Dict, Optional, Tuple

import httpx

from shared.errors import LinkHeaderParseError

_TOKEN = re.compile(r"[!#$%&'*+\-.^_`|~0-9A-Za-z]+")
_WHITESPACE = " \t"


def _skip_ws(value: str, pos: int) -> int:
    while pos < len(value) and value[pos] in _WHITESPACE:
        pos += 1
    return pos


def _read_quoted(value: str, pos: int) -> Tuple[str, int]:
    """Read a quoted-string starting at the opening quote."""
    chars = []
    pos += 1
    while pos < len(value):
        char = value[pos]
        if char == "\\":
            if pos + 1 >= len(value):
                break
            chars.append(value[pos + 1])
            pos += 2
            continue
        if char == '"':
            return "".join(chars), pos + 1
        chars.append(char)
        pos += 1
    raise LinkHeaderParseError(value, "unterminated quoted string")


def parse_link_header(value: str) -> Dict[str, str]:
    """Map each relation type in ``value`` to its link target.

    Relation types compare case-insensitively and are returned lowercased.
    When a relation repeats, the first link wins.
    """
    links: Dict[str, str] = {}
    pos = 0
    length = len(value)

    while True:
        pos = _skip_ws(value, pos)
        if pos >= length:
            break
        # Empty list elements are allowed by the list syntax
        if value[pos] == ",":
            pos += 1
            continue

        if value[pos] != "<":
            raise LinkHeaderParseError(value, f"expected '<' at position {pos}")
        end = value.find(">", pos + 1)
        if end == -1:
            raise LinkHeaderParseError(value, "unterminated link target")
        target = value[pos + 1:end].strip()
        pos = end + 1

        params: Dict[str, str] = {}
        while True:
            pos = _skip_ws(value, pos)
            if pos >= length or value[pos] == ",":
                break
            if value[pos] != ";":
                raise LinkHeaderParseError(value, f"expected ';' or ',' at position {pos}")
            pos = _skip_ws(value, pos + 1)

            match = _TOKEN.match(value, pos)
            if not match:
                raise LinkHeaderParseError(value, f"expected parameter name at position {pos}")
            name = match.group(0).lower()
            pos = _skip_ws(value, match.end())

            param_value = ""
            if pos < length and value[pos] == "=":
                pos = _skip_ws(value, pos + 1)
                if pos < length and value[pos] == '"':
                    param_value, pos = _read_quoted(value, pos)
                else:
                    match = _TOKEN.match(value, pos)
                    if not match:
                        raise LinkHeaderParseError(value, f"expected parameter value at position {pos}")
                    param_value = match.group(0)
                    pos = match.end()

            params.setdefault(name, param_value)

        for relation in params.get("rel", "").split():
            links.setdefault(relation.lower(), target)

    return links


def find_next_link(headers: httpx.Headers, base_url: str) -> Optional[str]:
    """Absolute URL of the "next" page announced in ``headers``, if any."""
    values = headers.get_list("link")
    if not values:
        return None

    links = parse_link_header(", ".join(values))
    target = links.get("next")
    if target is None:
        return None

    try:
        return str(httpx.URL(base_url).join(target))
    except httpx.InvalidURL as exc:
        raise LinkHeaderParseError(target, str(exc)) from exc
