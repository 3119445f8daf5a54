"""Query parameter slots <-> URL query string.

The parameter list is the source of truth; the query part of the URL is
rebuilt from it on every edit.
"""
from dataclasses import dataclass
from typing import Iterable, List
from urllib.parse import quote, unquote

DEFAULT_SLOTS = 4


@dataclass
class QueryParam:
    key: str = ""
    value: str = ""
    note: str = ""  # display only, never sent

    def as_tuple(self):
        return (self.key, self.value, self.note)


def blank_params(n: int = DEFAULT_SLOTS) -> List[QueryParam]:
    return [QueryParam() for _ in range(max(0, n))]


def base_url(url: str) -> str:
    pos = url.find("?")
    return url if pos < 0 else url[:pos]


def _emit(text: str, encode: bool) -> str:
    return quote(text, safe="") if encode else text


def sync(url: str, params: Iterable[QueryParam], encode: bool = False) -> str:
    """Return ``url`` with its query string rebuilt from ``params``.

    Everything from the first ``?`` on is dropped, then every param with a
    non-empty key is appended in order: ``key`` alone when the value is
    empty, ``key=value`` otherwise. Duplicate keys are kept. Nothing is
    percent-encoded unless ``encode`` is set.
    """
    out = base_url(url)
    first = True
    for p in params:
        if not p.key:
            continue
        out += "?" if first else "&"
        first = False
        out += _emit(p.key, encode)
        if p.value:
            out += "=" + _emit(p.value, encode)
    return out


def params_from_url(url: str, decode: bool = False) -> List[QueryParam]:
    """Split the query string back into params; ``decode`` undoes ``sync(..., encode=True)``."""
    pos = url.find("?")
    if pos < 0:
        return []
    out = []
    for piece in url[pos + 1:].split("&"):
        if not piece:
            continue
        key, _, value = piece.partition("=")
        if decode:
            key, value = unquote(key), unquote(value)
        out.append(QueryParam(key, value))
    return out
