"""
Neutral query -> native dialect translation.

Application code writes every query once, with ``?`` positional
placeholders and without backend-specific return clauses. The embedded
SQLite engine understands that form natively. For PostgreSQL (psycopg2)
the query is rewritten:

    - each ``?`` outside literals and comments becomes ``%s``,
      in encounter order; the parameter sequence is never reordered
    - literal ``%`` characters are doubled when parameters are bound,
      otherwise psycopg2 would read them as format markers
    - an INSERT without a RETURNING clause gets `` RETURNING id`` appended
      (before any trailing ``;``) so the generated key comes back

The text is walked exactly once by a small tokenizer that recognises
single-quoted strings, double-quoted identifiers, dollar-quoted strings,
``--`` line comments and ``/* */`` block comments. A ``?`` inside any of
them is left alone.

Placeholder and parameter counts are not validated here; a mismatch is
reported by the driver when the statement runs.
"""

from __future__ import annotations

import logging
import re
from typing import Iterator, List, Sequence, Tuple

logger = logging.getLogger(__name__)


CODE = "code"
LITERAL = "literal"
COMMENT = "comment"

_DOLLAR_TAG = re.compile(r"\$([A-Za-z_][A-Za-z0-9_]*)?\$")
_WORD = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
_TRAILING_TERMINATOR = re.compile(r"\s*;\s*$")

RETURNING_CLAUSE = " RETURNING id"


# ----------------------------------------------------------------------
# Tokenizer
# ----------------------------------------------------------------------

def _tokenize(query: str) -> Iterator[Tuple[str, str]]:
    """
    Split ``query`` into (kind, text) segments.

    Concatenating every text yields the original query. Unterminated
    literals or comments run to the end of the input.
    """
    n = len(query)
    i = 0
    start = 0

    while i < n:
        ch = query[i]

        if ch == "'" or ch == '"':
            if i > start:
                yield CODE, query[start:i]
            j = i + 1
            while j < n:
                if query[j] == ch:
                    # doubled quote is an escaped quote
                    if j + 1 < n and query[j + 1] == ch:
                        j += 2
                        continue
                    j += 1
                    break
                j += 1
            else:
                j = n
            yield LITERAL, query[i:j]
            i = start = j
            continue

        if ch == "-" and query.startswith("--", i):
            if i > start:
                yield CODE, query[start:i]
            j = query.find("\n", i)
            j = n if j == -1 else j + 1
            yield COMMENT, query[i:j]
            i = start = j
            continue

        if ch == "/" and query.startswith("/*", i):
            if i > start:
                yield CODE, query[start:i]
            j = query.find("*/", i + 2)
            j = n if j == -1 else j + 2
            yield COMMENT, query[i:j]
            i = start = j
            continue

        if ch == "$":
            m = _DOLLAR_TAG.match(query, i)
            # $1 style markers and identifiers containing $ are code
            if m and not (i > 0 and (query[i - 1].isalnum() or query[i - 1] == "_")):
                if i > start:
                    yield CODE, query[start:i]
                tag = m.group(0)
                j = query.find(tag, m.end())
                j = n if j == -1 else j + len(tag)
                yield LITERAL, query[i:j]
                i = start = j
                continue

        i += 1

    if start < n:
        yield CODE, query[start:]


# ----------------------------------------------------------------------
# Inspection helpers
# ----------------------------------------------------------------------

def first_keyword(query: str) -> str:
    """
    Return the first keyword of ``query`` upper-cased, ignoring leading
    whitespace and comments. Empty string when there is none.
    """
    for kind, text in _tokenize(query):
        if kind == COMMENT:
            continue
        if kind == LITERAL:
            return ""
        stripped = text.lstrip()
        if not stripped:
            continue
        m = _WORD.match(stripped)
        return m.group(0).upper() if m else ""
    return ""


def is_insert(query: str) -> bool:
    return first_keyword(query) == "INSERT"


def has_returning(query: str) -> bool:
    """True if a RETURNING keyword appears outside literals and comments."""
    for kind, text in _tokenize(query):
        if kind != CODE:
            continue
        for word in _WORD.findall(text):
            if word.upper() == "RETURNING":
                return True
    return False


def count_placeholders(query: str) -> int:
    return sum(text.count("?") for kind, text in _tokenize(query) if kind == CODE)


# ----------------------------------------------------------------------
# Translation
# ----------------------------------------------------------------------

def to_pyformat(query: str, *, escape_percent: bool = True) -> str:
    """
    Rewrite ``?`` placeholders to psycopg2 ``%s`` markers.

    With ``escape_percent`` every literal ``%`` (in code, strings and
    comments alike) is doubled.
    """
    out: List[str] = []
    for kind, text in _tokenize(query):
        if escape_percent:
            text = text.replace("%", "%%")
        if kind == CODE:
            text = text.replace("?", "%s")
        out.append(text)
    return "".join(out)


def append_returning_id(query: str) -> str:
    """Append `` RETURNING id`` before any trailing statement terminator."""
    body = _TRAILING_TERMINATOR.sub("", query.rstrip())
    terminator = ";" if body != query.rstrip() else ""
    return body + RETURNING_CLAUSE + terminator


def translate_for_postgres(
    query: str,
    params: Sequence = (),
) -> Tuple[str, tuple]:
    """
    Translate a neutral query and its parameters for psycopg2.

    Returns
    -------
    (native_query, native_params)
        native_params is a tuple in the original order.
    """
    native_params = tuple(params or ())

    if logger.isEnabledFor(logging.DEBUG):
        expected = count_placeholders(query)
        if expected != len(native_params):
            logger.debug(
                "Placeholder count %d does not match %d bound parameter(s): %s",
                expected, len(native_params), query,
            )

    if is_insert(query) and not has_returning(query):
        query = append_returning_id(query)

    native_query = to_pyformat(query, escape_percent=bool(native_params))
    return native_query, native_params


def passthrough(query: str, params: Sequence = ()) -> Tuple[str, tuple]:
    """SQLite already speaks the neutral dialect."""
    return query, tuple(params or ())


__all__ = [
    "first_keyword",
    "is_insert",
    "has_returning",
    "count_placeholders",
    "to_pyformat",
    "append_returning_id",
    "translate_for_postgres",
    "passthrough",
]
