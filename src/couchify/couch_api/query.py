"""Query-string encoding for view and ``_all_docs`` requests.

CouchDB parses most view options as JSON: ``startkey="_design/"`` must be
sent with its quotes, ``include_docs`` as ``true`` rather than ``True``.
"""

from __future__ import annotations

import json
from typing import Any

# Options whose value is always JSON, even when it is already a string.
_JSON_OPTIONS: frozenset[str] = frozenset({
    "key",
    "keys",
    "startkey",
    "start_key",
    "endkey",
    "end_key",
})


def encode_query(options: dict[str, Any]) -> dict[str, str]:
    """Return *options* encoded for the query string.

    * ``key``/``keys``/``startkey``/``endkey`` (and their ``start_key`` /
      ``end_key`` spellings) are always JSON encoded.
    * Any other non-string value is JSON encoded (``True`` -> ``"true"``).
    * Other string values (``stale="ok"``, ``startkey_docid``) pass through.
    * ``None`` values are dropped.
    """
    encoded: dict[str, str] = {}
    for name in sorted(options):
        value = options[name]
        if value is None:
            continue
        if name in _JSON_OPTIONS or not isinstance(value, str):
            encoded[name] = json.dumps(value, separators=(",", ":"))
        else:
            encoded[name] = value
    return encoded
