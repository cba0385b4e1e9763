from __future__ import annotations
import string
from typing import Any, FrozenSet, Mapping, Optional
from urllib.parse import urlencode

from .errors import UriSyntaxError

_ALPHA = frozenset(string.ascii_letters)
_ALPHANUM = _ALPHA | frozenset(string.digits)
_HEX = frozenset(string.hexdigits)
_UNRESERVED = _ALPHANUM | frozenset("-_.!~*'()")
_URIC = _UNRESERVED | frozenset(";/?:@&=+$,[]")
_PATH = _UNRESERVED | frozenset(";/:@&=+$,")
_AUTHORITY = _UNRESERVED | frozenset(";:@&=+$,[]")
_SCHEME = _ALPHANUM | frozenset("+-.")


def _is_other(c: str) -> bool:
    # Non-ASCII characters are accepted unless they are spaces or controls.
    return ord(c) > 127 and c.isprintable() and not c.isspace()


def _scan(uri: str, start: int, stops: str) -> int:
    for i in range(start, len(uri)):
        if uri[i] in stops:
            return i
    return len(uri)


def _check_chars(uri: str, start: int, end: int, allowed: FrozenSet[str], component: str, escapes: bool = True) -> None:
    i = start
    while i < end:
        c = uri[i]
        if c == "%" and escapes:
            if i + 2 < end and uri[i + 1] in _HEX and uri[i + 2] in _HEX:
                i += 3
                continue
            raise UriSyntaxError(uri, "Malformed escape pair", i)
        if c not in allowed and not _is_other(c):
            raise UriSyntaxError(uri, f"Illegal character in {component}", i)
        i += 1


def _check_hierarchical(uri: str, p: int) -> int:
    n = len(uri)
    if uri.startswith("//", p):
        p += 2
        q = _scan(uri, p, "/?#")
        if q > p:
            _check_chars(uri, p, q, _AUTHORITY, "authority")
        elif q >= n:
            raise UriSyntaxError(uri, "Expected authority", p)
        p = q
    q = _scan(uri, p, "?#")
    _check_chars(uri, p, q, _PATH, "path")
    p = q
    if p < n and uri[p] == "?":
        q = _scan(uri, p + 1, "#")
        _check_chars(uri, p + 1, q, _URIC, "query")
        p = q
    return p


def validate_uri(uri: str) -> str:
    """Check ``uri`` against URI component grammar; return it unchanged."""
    n = len(uri)
    colon = _scan(uri, 0, "/?#:")
    if colon < n and uri[colon] == ":":
        if colon == 0:
            raise UriSyntaxError(uri, "Expected scheme name", 0)
        if uri[0] not in _ALPHA:
            raise UriSyntaxError(uri, "Illegal character in scheme name", 0)
        _check_chars(uri, 1, colon, _SCHEME, "scheme name", escapes=False)
        p = colon + 1
        if p < n and uri[p] == "/":
            p = _check_hierarchical(uri, p)
        else:
            q = _scan(uri, p, "#")
            if q <= p:
                raise UriSyntaxError(uri, "Expected scheme-specific part", p)
            _check_chars(uri, p, q, _URIC, "opaque part")
            p = q
    else:
        p = _check_hierarchical(uri, 0)
    if p < n and uri[p] == "#":
        _check_chars(uri, p + 1, n, _URIC, "fragment")
    return uri


def _param_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def add_query_parameters(uri: str, params: Optional[Mapping[str, Any]]) -> str:
    """Append ``params`` to the query of ``uri``, keeping any existing query as is."""
    if not params:
        return uri
    base, hash_, fragment = uri.partition("#")
    encoded = urlencode([(str(k), _param_value(v)) for k, v in params.items()])
    if "?" not in base:
        base = f"{base}?{encoded}"
    elif base.endswith(("?", "&")):
        base = f"{base}{encoded}"
    else:
        base = f"{base}&{encoded}"
    return f"{base}{hash_}{fragment}"
