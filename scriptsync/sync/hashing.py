"""Content hash used to detect drift between the local and remote copies.

This is the classic 31-multiplier string hash over UTF-16 code units with
signed 32-bit wraparound, rendered as signed hexadecimal (``-3369657c``).
The output must stay bit-for-bit identical to previously stored values.

It is NOT a cryptographic digest: collisions are easy to construct on purpose.
Only use it to compare copies owned by the same user.
"""

from __future__ import annotations

_MASK = 0xFFFFFFFF
_SIGN_BIT = 0x80000000


def _to_int32(value: int) -> int:
    value &= _MASK
    if value & _SIGN_BIT:
        value -= 1 << 32
    return value


def _utf16_code_units(text: str):
    data = text.encode("utf-16-le", errors="surrogatepass")
    for i in range(0, len(data), 2):
        yield data[i] | (data[i + 1] << 8)


def compute_hash(text: str) -> str:
    """Hash ``text`` and return the signed 32-bit result as hex."""
    h = 0
    for unit in _utf16_code_units(text):
        h = _to_int32((h << 5) - h + unit)

    if h < 0:
        return "-" + format(-h, "x")
    return format(h, "x")
