"""Conversion between base58 multihashes and fixed-width bytes32 hashes.

The content store addresses objects by sha2-256 multihash
(``0x12 0x20 || digest``, base58 encoded as ``Qm...``). Contracts store the
bare 32-byte digest. Internally every comparison uses the bytes32 form
``0x`` + 64 lowercase hex digits; conversion in both directions is lossless.
"""

from __future__ import annotations

import base58

from event_pinner.errors import HashFormatError

SHA2_256 = 0x12
DIGEST_LENGTH = 32
_PREFIX = bytes([SHA2_256, DIGEST_LENGTH])
_HEX_DIGITS = set("0123456789abcdef")


def is_multihash(value: str) -> bool:
    """Cheap shape check for a base58 sha2-256 multihash."""
    return len(value) == 46 and value.startswith("Qm")


def multihash_to_bytes32(multihash: str) -> str:
    """``Qm...`` -> ``0x<64 hex>``."""
    try:
        raw = base58.b58decode(multihash)
    except ValueError as exc:
        raise HashFormatError(f"invalid base58 multihash {multihash!r}: {exc}") from exc
    if len(raw) != len(_PREFIX) + DIGEST_LENGTH or raw[:2] != _PREFIX:
        raise HashFormatError(f"not a sha2-256 multihash: {multihash!r}")
    return "0x" + raw[2:].hex()


def bytes32_to_multihash(value: str) -> str:
    """``0x<64 hex>`` -> ``Qm...``."""
    normalized = normalize_hash(value)
    if normalized is None:
        raise HashFormatError("the zero hash has no multihash")
    digest = bytes.fromhex(normalized[2:])
    return base58.b58encode(_PREFIX + digest).decode("ascii")


def normalize_hash(value: object) -> str | None:
    """Normalize a raw event argument to bytes32 form.

    Accepts hex strings (``0x`` optional, short forms such as ``0x0`` are
    left-padded), ``bytes`` up to 32 long, non-negative integers and base58
    multihashes. The all-zero value means "no hash" and returns None.
    """
    if value is None:
        return None
    if isinstance(value, bool):
        raise HashFormatError(f"not a hash value: {value!r}")

    if isinstance(value, int):
        if value < 0 or value.bit_length() > DIGEST_LENGTH * 8:
            raise HashFormatError(f"integer out of bytes32 range: {value}")
        raw = value.to_bytes(DIGEST_LENGTH, "big")
    elif isinstance(value, (bytes, bytearray)):
        if len(value) > DIGEST_LENGTH:
            raise HashFormatError(f"{len(value)} bytes do not fit in bytes32")
        raw = bytes(value).rjust(DIGEST_LENGTH, b"\x00")
    elif isinstance(value, str):
        text = value.strip()
        if is_multihash(text):
            return multihash_to_bytes32(text)
        text = text.lower()
        if text.startswith("0x"):
            text = text[2:]
        if len(text) > DIGEST_LENGTH * 2 or not set(text) <= _HEX_DIGITS:
            raise HashFormatError(f"not a bytes32 hex value: {value!r}")
        raw = bytes.fromhex(text.rjust(DIGEST_LENGTH * 2, "0"))
    else:
        raise HashFormatError(f"unsupported hash value type: {type(value).__name__}")

    if not any(raw):
        return None
    return "0x" + raw.hex()
