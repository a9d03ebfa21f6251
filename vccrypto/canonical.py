from __future__ import annotations

import json
import math
import re
from decimal import Decimal
from typing import Any, Callable

from vccrypto.errors import CanonicalizationError


class _Absent:
    """
    Marker for a field that is not there at all, as opposed to an explicit null.
    Only this marker is dropped by canonicalize(); None is always serialized.
    """

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "ABSENT"

    def __bool__(self) -> bool:
        return False

    def __copy__(self):
        return self

    def __deepcopy__(self, memo):
        return self

    def __reduce__(self):
        return (_Absent, ())


ABSENT = _Absent()


def canonicalize(obj: Any) -> bytes:
    """
        Canonical JSON encoding for hashing, signing and verification.
        -keys sorted by UTF-16 code unit, so documents assembled in any order match
        -keys whose value is ABSENT are omitted, explicit None stays as null
        -no whitespace, UTF-8 kept as-is (ensure_ascii=False)
        -numbers follow JSON literal rules (5.0 renders as 5)
    """
    if obj is ABSENT:
        raise CanonicalizationError("An absent value has no canonical form")
    return _render(obj).encode("utf-8")


def canonical_hash(obj: Any, hash_fn: Callable[[bytes], bytes]) -> bytes:
    return hash_fn(canonicalize(obj))


def prune_absent(obj: Any) -> Any:
    """Copy of obj with every ABSENT-valued dict entry removed, at any depth."""
    if isinstance(obj, dict):
        return {k: prune_absent(v) for k, v in obj.items() if v is not ABSENT}
    if isinstance(obj, (list, tuple)):
        return [None if v is ABSENT else prune_absent(v) for v in obj]
    return obj


def _utf16_key(key: str) -> bytes:
    return key.encode("utf-16-be", "surrogatepass")


_SURROGATES = re.compile(r"[\ud800-\udbff][\udc00-\udfff]|[\ud800-\udfff]")


def _join_or_escape(match: "re.Match[str]") -> str:
    # a high+low pair is one astral character; a lone half becomes \uXXXX
    text = match.group()
    if len(text) == 2:
        return text.encode("utf-16-be", "surrogatepass").decode("utf-16-be")
    return "\\u%04x" % ord(text)


def _render_str(text: str) -> str:
    return _SURROGATES.sub(_join_or_escape, json.dumps(text, ensure_ascii=False))


def _render(obj: Any) -> str:
    if obj is None or obj is ABSENT:
        return "null"
    if obj is True:
        return "true"
    if obj is False:
        return "false"
    if isinstance(obj, str):
        return _render_str(obj)
    if isinstance(obj, int):
        return str(int(obj))
    if isinstance(obj, float):
        return _render_float(obj)
    if isinstance(obj, (list, tuple)):
        return "[" + ",".join(_render(item) for item in obj) + "]"
    if isinstance(obj, dict):
        for key in obj:
            if not isinstance(key, str):
                raise CanonicalizationError(
                    f"Object keys must be strings, got {type(key).__name__}",
                    {"key": repr(key)},
                )
        keys = sorted((k for k, v in obj.items() if v is not ABSENT), key=_utf16_key)
        members = (_render_str(k) + ":" + _render(obj[k]) for k in keys)
        return "{" + ",".join(members) + "}"
    raise CanonicalizationError(
        f"Value of type {type(obj).__name__} has no JSON form",
        {"type": type(obj).__name__},
    )


def _render_float(value: float) -> str:
    # ECMAScript Number::toString over Python's shortest round-trip digits
    if math.isnan(value) or math.isinf(value):
        raise CanonicalizationError(f"{value!r} is not a JSON number")
    if value == 0:
        return "0"
    sign = "-" if value < 0 else ""
    _, digit_tuple, exponent = Decimal(repr(abs(value))).as_tuple()
    raw = "".join(str(d) for d in digit_tuple)
    digits = raw.rstrip("0")
    exponent += len(raw) - len(digits)
    k = len(digits)
    n = exponent + k

    if k <= n <= 21:
        return sign + digits + "0" * (n - k)
    if 0 < n <= 21:
        return sign + digits[:n] + "." + digits[n:]
    if -6 < n <= 0:
        return sign + "0." + "0" * (-n) + digits
    e = n - 1
    mantissa = digits if k == 1 else digits[0] + "." + digits[1:]
    return f"{sign}{mantissa}e{'+' if e >= 0 else '-'}{abs(e)}"
