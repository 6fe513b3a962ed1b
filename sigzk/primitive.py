"""ML-DSA (FIPS 204) verification primitive.

The guest only needs two things from the signature scheme: decoding a
verifying key and checking a signature. Both are wrapped here so that the
protocol constants (no domain-separation context, raw message hashing) are
fixed in one place.
"""

from __future__ import annotations

import logging
from typing import Optional

from dilithium_py.ml_dsa import ML_DSA_44, ML_DSA_65, ML_DSA_87

logger = logging.getLogger(__name__)

# Protocol constants. Changing either changes what "verified" means.
DOMAIN_NONE = b""
HASH_ID_RAW = "raw"

ML_DSA_44_LEVEL = 44
ML_DSA_65_LEVEL = 65
ML_DSA_87_LEVEL = 87

# level -> (scheme, verifying key size, signing key size, signature size)
_PARAMETER_SETS = {
    ML_DSA_44_LEVEL: (ML_DSA_44, 1312, 2560, 2420),
    ML_DSA_65_LEVEL: (ML_DSA_65, 1952, 4032, 3309),
    ML_DSA_87_LEVEL: (ML_DSA_87, 2592, 4896, 4627),
}
LEVELS = tuple(sorted(_PARAMETER_SETS))


def _params(level: int):
    try:
        return _PARAMETER_SETS[level]
    except KeyError:
        raise ValueError(f"unknown ML-DSA level {level}, expected one of {LEVELS}") from None


def scheme(level: int):
    return _params(level)[0]


def vrfy_key_size(level: int) -> int:
    return _params(level)[1]


def sign_key_size(level: int) -> int:
    return _params(level)[2]


def signature_size(level: int) -> int:
    return _params(level)[3]


def level_for_vrfy_key(key_bytes: bytes) -> Optional[int]:
    for level, (_, vk_len, _, _) in _PARAMETER_SETS.items():
        if len(key_bytes) == vk_len:
            return level
    return None


def level_for_sign_key(key_bytes: bytes) -> Optional[int]:
    for level, (_, _, sk_len, _) in _PARAMETER_SETS.items():
        if len(key_bytes) == sk_len:
            return level
    return None


def _check_protocol(ctx: bytes, hash_id: str) -> None:
    if len(ctx) > 255:
        raise ValueError("ML-DSA context must be at most 255 bytes")
    if hash_id != HASH_ID_RAW:
        raise ValueError(f"unsupported hash identifier {hash_id!r}")


class VerifyingKey:
    """A decoded ML-DSA verifying key."""

    def __init__(self, level: int, key_bytes: bytes):
        self.level = level
        self.key_bytes = bytes(key_bytes)

    @classmethod
    def decode(cls, key_bytes: bytes) -> Optional["VerifyingKey"]:
        level = level_for_vrfy_key(key_bytes)
        if level is None:
            return None
        return cls(level, key_bytes)

    def get_level(self) -> int:
        return self.level

    def verify(self, signature: bytes, ctx: bytes, hash_id: str, message: bytes) -> bool:
        _check_protocol(ctx, hash_id)
        if len(signature) != signature_size(self.level):
            return False
        try:
            return bool(scheme(self.level).verify(self.key_bytes, message, signature, ctx=ctx))
        except (ValueError, IndexError) as exc:
            # Malformed signature encodings (e.g. bad hint packing) are a rejection.
            logger.debug("signature rejected while unpacking: %s", exc)
            return False


class SigningKey:
    """A decoded ML-DSA signing key."""

    def __init__(self, level: int, key_bytes: bytes):
        self.level = level
        self.key_bytes = bytes(key_bytes)

    @classmethod
    def decode(cls, key_bytes: bytes) -> Optional["SigningKey"]:
        level = level_for_sign_key(key_bytes)
        if level is None:
            return None
        return cls(level, key_bytes)

    def get_level(self) -> int:
        return self.level

    def sign(self, ctx: bytes, hash_id: str, message: bytes) -> bytes:
        _check_protocol(ctx, hash_id)
        return scheme(self.level).sign(self.key_bytes, message, ctx=ctx)


def verify_signature(vrfy_key: bytes, signature: bytes, message: bytes) -> bool:
    """Verifies ``signature`` over ``message`` under the encoded ``vrfy_key``.

    A key that cannot be decoded is reported and treated as a failed
    verification rather than an error.
    """
    vk = VerifyingKey.decode(vrfy_key)
    if vk is None:
        logger.error("Could not decode verifying key (%d bytes)", len(vrfy_key))
        return False
    return vk.verify(signature, DOMAIN_NONE, HASH_ID_RAW, message)
