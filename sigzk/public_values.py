"""The public values a guest commits, encoded with the Solidity ABI.

The layout is ``abi.encode(PublicValuesStruct)`` for

    struct PublicValuesStruct {
        bytes vrfy_key;
        bytes signature;
        bytes msg;
        bool verified;
    }

so an on-chain verifier can decode the committed bytes positionally.
"""

from __future__ import annotations

from dataclasses import dataclass

from eth_abi import decode, encode
from eth_abi.exceptions import DecodingError

from sigzk.primitive import verify_signature

PUBLIC_VALUES_ABI = ["(bytes,bytes,bytes,bool)"]


class EncodingError(ValueError):
    pass


@dataclass(frozen=True)
class PublicValuesStruct:
    vrfy_key: bytes
    signature: bytes
    msg: bytes
    verified: bool

    @classmethod
    def from_verification(cls, vrfy_key: bytes, signature: bytes, msg: bytes) -> "PublicValuesStruct":
        """Runs signature verification and records its outcome with the inputs."""
        verified = verify_signature(vrfy_key, signature, msg)
        return cls(bytes(vrfy_key), bytes(signature), bytes(msg), verified)

    def abi_encode(self) -> bytes:
        return encode(
            PUBLIC_VALUES_ABI,
            [(self.vrfy_key, self.signature, self.msg, self.verified)],
        )

    @classmethod
    def abi_decode(cls, data: bytes) -> "PublicValuesStruct":
        try:
            (fields,) = decode(PUBLIC_VALUES_ABI, bytes(data))
        except (DecodingError, OverflowError) as exc:
            # huge length or offset words overflow eth-abi's slicing
            raise EncodingError(f"malformed public values: {exc}") from exc
        record = cls(bytes(fields[0]), bytes(fields[1]), bytes(fields[2]), bool(fields[3]))
        if record.abi_encode() != bytes(data):
            raise EncodingError("public values are not in canonical ABI encoding")
        return record


def abi_encode(record: PublicValuesStruct) -> bytes:
    return record.abi_encode()


def abi_decode(data: bytes) -> PublicValuesStruct:
    return PublicValuesStruct.abi_decode(data)
