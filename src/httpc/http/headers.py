"""
=============================================================================
HEADER SET
=============================================================================

An ordered collection of (name, value) pairs with case-insensitive lookup.

=============================================================================
WHY NOT A DICT?
=============================================================================

A dict with lowercase keys is the obvious model, and it is wrong for a
client that has to reproduce what it sent and show what it received:

    ┌─────────────────────────────────────────────────────────────────────┐
    │  Wire                          dict {lower: value}    HeaderSet     │
    ├─────────────────────────────────────────────────────────────────────┤
    │  Set-Cookie: a=1               {"set-cookie":         [("Set-Cookie│
    │  Content-Type: text/html         "b=2", ...}            ", "a=1"), │
    │  Set-Cookie: b=2                                       ("Content-  │
    │                                  first cookie LOST      Type", ..),│
    │                                  order LOST            ("Set-Cookie│
    │                                  original case LOST     ", "b=2")] │
    └─────────────────────────────────────────────────────────────────────┘

Some headers are legally repeatable with independent meaning (Set-Cookie
cannot even be comma-joined), so duplicates are kept as separate entries
and never merged.

=============================================================================
VALIDATION (RFC 7230 section 3.2)
=============================================================================

    header-field = field-name ":" OWS field-value OWS

    field-name:  a token - visible ASCII except delimiters. No control
                 characters, no colon, no whitespace.
    field-value: any visible characters, SP and HTAB, plus obs-text
                 (0x80-0xFF). CR, LF, NUL and other controls are refused
                 so a value can never inject an extra header line.

Leading and trailing OWS on values is trimmed on insertion; that is the only
normalization performed.

=============================================================================
"""

import re
from typing import Iterable, Iterator, List, Optional, Tuple

from .errors import InvalidHeaderName, InvalidHeaderValue


TOKEN_PATTERN = re.compile(r"^[!#$%&'*+\-.^_`|~0-9A-Za-z]+$")

# Controls other than HTAB, plus DEL.
_FORBIDDEN_VALUE_CHARS = re.compile(r"[\x00-\x08\x0a-\x1f\x7f]")

_OWS = " \t"


def validate_name(name: str) -> str:
    if not isinstance(name, str) or not TOKEN_PATTERN.match(name):
        raise InvalidHeaderName(f"Invalid header name: {name!r}")
    return name


def normalize_value(value: str) -> str:
    """Trim optional whitespace and reject characters that break framing."""
    if not isinstance(value, str):
        raise InvalidHeaderValue(f"Header value must be str, got {type(value).__name__}")
    value = value.strip(_OWS)
    if _FORBIDDEN_VALUE_CHARS.search(value):
        raise InvalidHeaderValue(f"Invalid characters in header value: {value!r}")
    return value


class HeaderSet:
    """
    Ordered multi-valued header collection.

    Example:
        headers = HeaderSet()
        headers.insert("Set-Cookie", "a=1")
        headers.insert("set-cookie", "b=2")
        headers.get_first("SET-COOKIE")   # "a=1"
        headers.get_all("Set-Cookie")     # ["a=1", "b=2"]
        list(headers)                     # both pairs, original case

    A frozen() set refuses every mutation with TypeError. Parsed responses
    carry one; copy() gives back a writable set.
    """

    def __init__(self, items: Optional[Iterable[Tuple[str, str]]] = None):
        self._entries: List[Tuple[str, str]] = []
        self._read_only = False
        if items is not None:
            self.extend(items)

    # =========================================================================
    # MUTATION
    # =========================================================================

    def insert(self, name: str, value: str) -> "HeaderSet":
        """
        Append an entry, validating both halves.

        Raises:
            InvalidHeaderName: name is not a token.
            InvalidHeaderValue: value contains control characters.

        Returns:
            Self for method chaining
        """
        self._check_writable()
        self._entries.append((validate_name(name), normalize_value(value)))
        return self

    def extend(self, items: Iterable[Tuple[str, str]]) -> "HeaderSet":
        for name, value in items:
            self.insert(name, value)
        return self

    def remove_all(self, name: str) -> int:
        """Remove every entry named `name` (any case). Returns how many went."""
        self._check_writable()
        key = name.lower()
        kept = [(n, v) for n, v in self._entries if n.lower() != key]
        removed = len(self._entries) - len(kept)
        self._entries = kept
        return removed

    def replace(self, name: str, value: str) -> "HeaderSet":
        """
        Set a single value for `name`.

        The first existing entry keeps its position (so a rewritten Host
        stays at the top of the request); any later duplicates are dropped.
        Appends when the name is absent.
        """
        self._check_writable()
        validate_name(name)
        value = normalize_value(value)
        key = name.lower()
        result: List[Tuple[str, str]] = []
        replaced = False
        for n, v in self._entries:
            if n.lower() != key:
                result.append((n, v))
            elif not replaced:
                result.append((name, value))
                replaced = True
        if not replaced:
            result.append((name, value))
        self._entries = result
        return self

    # =========================================================================
    # LOOKUP
    # =========================================================================

    def get_first(self, name: str, default: Optional[str] = None) -> Optional[str]:
        key = name.lower()
        for n, v in self._entries:
            if n.lower() == key:
                return v
        return default

    def get_all(self, name: str) -> List[str]:
        key = name.lower()
        return [v for n, v in self._entries if n.lower() == key]

    def items(self) -> List[Tuple[str, str]]:
        return list(self._entries)

    def copy(self) -> "HeaderSet":
        clone = HeaderSet()
        clone._entries = list(self._entries)
        return clone

    def frozen(self) -> "HeaderSet":
        """Read-only copy of this set."""
        clone = self.copy()
        clone._read_only = True
        return clone

    @property
    def read_only(self) -> bool:
        return self._read_only

    def _check_writable(self) -> None:
        if self._read_only:
            raise TypeError("HeaderSet is read-only; use copy() for a mutable one")

    def __contains__(self, name: object) -> bool:
        if not isinstance(name, str):
            return False
        return self.get_first(name) is not None

    def __iter__(self) -> Iterator[Tuple[str, str]]:
        return iter(list(self._entries))

    def __len__(self) -> int:
        return len(self._entries)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, HeaderSet):
            return NotImplemented
        return self._entries == other._entries

    def __repr__(self) -> str:
        return f"HeaderSet({self._entries!r})"
