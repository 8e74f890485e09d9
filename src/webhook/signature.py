"""Webhook signature verification (HMAC-SHA512, hex encoded).

The sender signs ``JSON.stringify(body)``, so verification runs over the
parsed body re-serialized with :func:`canonical_json`.
"""

from __future__ import annotations

import hashlib
import hmac
import json
import math
import re
from decimal import Decimal
from typing import Any

# json.loads merges valid surrogate pairs; anything left in this range is lone.
_LONE_SURROGATE = re.compile("[\ud800-\udfff]")
_ARRAY_INDEX = re.compile(r"^(0|[1-9][0-9]*)$")
_MAX_ARRAY_INDEX = 2**32 - 2
_MAX_EXACT_INT = 2**53


def compute_signature(secret: str, message: str) -> str:
    """Return the lowercase hex HMAC-SHA512 of ``message`` keyed by ``secret``."""
    return hmac.new(secret.encode(), message.encode(), hashlib.sha512).hexdigest()


def is_signature_valid(secret: str, signature: str | None, message: str) -> bool:
    """Return True if ``signature`` equals the HMAC-SHA512 of ``message``.

    Exact, case-sensitive, full-length comparison. Absent or malformed
    signatures simply fail to match.
    """
    if not signature:
        return False
    expected = compute_signature(secret, message)
    # Constant-time comparison via hmac.compare_digest
    return hmac.compare_digest(signature.encode(), expected.encode())


def canonical_json(body: Any) -> str:
    """Serialize ``body`` the way ``JSON.stringify`` does.

    Compact separators, non-ASCII left as-is, lone surrogates escaped as
    ``\\uXXXX``, and numbers written with the JavaScript Number-to-String
    rules (``1.0`` -> ``1``, ``0.00001`` stays positional, ``1e21`` ->
    ``1e+21``). Object keys keep insertion order, except that integer-like
    keys come first in ascending order, as they do on a JavaScript object.
    """
    return _LONE_SURROGATE.sub(_escape_surrogate, _serialize(body))


def _escape_surrogate(match: re.Match[str]) -> str:
    return f"\\u{ord(match.group()):04x}"


def _serialize(value: Any) -> str:
    if value is None:
        return "null"
    if value is True:
        return "true"
    if value is False:
        return "false"
    if isinstance(value, int):
        return _format_int(value)
    if isinstance(value, float):
        return _format_number(value)
    if isinstance(value, str):
        return json.dumps(value, ensure_ascii=False)
    if isinstance(value, dict):
        members = ",".join(
            f"{json.dumps(key, ensure_ascii=False)}:{_serialize(item)}"
            for key, item in _property_order(value)
        )
        return "{" + members + "}"
    if isinstance(value, (list, tuple)):
        return "[" + ",".join(_serialize(item) for item in value) + "]"
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _property_order(obj: dict[str, Any]) -> list[tuple[str, Any]]:
    indices = sorted(
        (key for key in obj if _ARRAY_INDEX.match(key) and int(key) <= _MAX_ARRAY_INDEX),
        key=int,
    )
    index_set = set(indices)
    return [(key, obj[key]) for key in indices] + [
        (key, item) for key, item in obj.items() if key not in index_set
    ]


def _format_int(value: int) -> str:
    # The sender parsed the body into doubles, so large integers lost precision
    if abs(value) < _MAX_EXACT_INT:
        return str(value)
    try:
        return _format_number(float(value))
    except OverflowError:
        return "null"


def _format_number(value: float) -> str:
    """Render a float as JavaScript's ``Number.prototype.toString`` would."""
    if not math.isfinite(value):
        return "null"
    if value == 0:
        return "0"
    sign = "-" if value < 0 else ""
    # repr gives the shortest round-tripping digits, the same ones JavaScript picks
    _, digit_tuple, exponent = Decimal(repr(abs(value))).normalize().as_tuple()
    digits = "".join(str(d) for d in digit_tuple)
    k = len(digits)
    n = exponent + k

    if k <= n <= 21:
        return sign + digits + "0" * (n - k)
    if 0 < n <= 21:
        return sign + digits[:n] + "." + digits[n:]
    if -6 < n <= 0:
        return sign + "0." + "0" * -n + digits
    e = n - 1
    mantissa = digits if k == 1 else digits[0] + "." + digits[1:]
    return f"{sign}{mantissa}e{'+' if e >= 0 else '-'}{abs(e)}"
