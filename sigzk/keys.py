"""Key generation and signing for building realistic guest inputs."""

from __future__ import annotations

import logging
from typing import Optional, Tuple

from sigzk.primitive import (
    DOMAIN_NONE,
    HASH_ID_RAW,
    ML_DSA_44_LEVEL,
    SigningKey,
    scheme,
    sign_key_size,
    signature_size,
    vrfy_key_size,
)

logger = logging.getLogger(__name__)


def generate_keys(level: int = ML_DSA_44_LEVEL) -> Tuple[bytes, bytes]:
    """Returns a fresh ``(sign_key, vrfy_key)`` pair for the given ML-DSA level.

    Key material comes from the operating system CSPRNG.
    """
    # Determine buffer sizes for keys.
    sign_key_len = sign_key_size(level)
    vrfy_key_len = vrfy_key_size(level)

    vrfy_key, sign_key = scheme(level).keygen()
    assert len(sign_key) == sign_key_len, "signing key size does not match parameter set"
    assert len(vrfy_key) == vrfy_key_len, "verifying key size does not match parameter set"
    return sign_key, vrfy_key


def sign_message(sign_key: bytes, message: bytes) -> Optional[bytes]:
    sk = SigningKey.decode(sign_key)
    if sk is None:
        logger.error("Could not decode signing key (%d bytes)", len(sign_key))
        return None

    sig = sk.sign(DOMAIN_NONE, HASH_ID_RAW, message)
    assert len(sig) == signature_size(sk.get_level()), "signature size does not match parameter set"
    return sig
