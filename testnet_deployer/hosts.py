"""Expansion of compact host range expressions.

``"foo[1,2,5-7]bar;baz"`` expands to
``["foo1bar", "foo2bar", "foo5bar", "foo6bar", "foo7bar", "baz"]``.
"""

import re
from typing import List

from .errors import DuplicateHostError, ParseError

_TEMPLATE = re.compile(r"([0-9a-zA-Z_\-.]*)\[([0-9a-zA-Z_\-.,]+)\]([0-9a-zA-Z_\-.]*)")
_DIGITS = re.compile(r"[0-9]+")

# Upper bound on the width of a single numeric range
MAX_RANGE_SPAN = 1000


def resolve(expr: str) -> List[str]:
    """Expand a ``;``-separated host range expression into host names.

    Order follows the expression left to right. A host name produced twice
    raises DuplicateHostError; an empty expression resolves to ``[]``.
    """
    if not expr:
        return []

    seen = set()
    hosts: List[str] = []
    for segment in expr.split(";"):
        for host in _expand_segment(segment):
            if host in seen:
                raise DuplicateHostError(host)
            seen.add(host)
            hosts.append(host)
    return hosts


def _expand_segment(segment: str) -> List[str]:
    match = _TEMPLATE.fullmatch(segment)
    if match is None:
        if "[" in segment or "]" in segment:
            raise ParseError(f"Malformed machine range {segment!r}")
        return [segment]

    prefix, spec, suffix = match.groups()
    return [f"{prefix}{token}{suffix}" for token in expand_range(spec)]


def expand_range(spec: str) -> List[str]:
    """Expand ``"0,1,3-6"`` into ``["0", "1", "3", "4", "5", "6"]``."""
    expressed: List[str] = []
    for token in spec.split(","):
        if "-" not in token:
            expressed.append(token)
            continue

        start_str, end_str = token.split("-", 1)
        if not (_DIGITS.fullmatch(start_str) and _DIGITS.fullmatch(end_str)):
            raise ParseError(f"Invalid range {token!r}")
        start, end = int(start_str), int(end_str)

        if start < 0 or start > end or end - start > MAX_RANGE_SPAN:
            raise ParseError(f"Invalid range {start}-{end}")
        expressed.extend(str(i) for i in range(start, end + 1))
    return expressed
