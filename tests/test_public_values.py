import pytest

from sigzk.public_values import EncodingError, PublicValuesStruct, abi_decode, abi_encode


def _word(data, index):
    return int.from_bytes(data[32 * index:32 * (index + 1)], "big")


def test_round_trip_preserves_every_field():
    for record in (
        PublicValuesStruct(b"\x01" * 1312, b"\x02" * 2420, b"Hello, SP1", True),
        PublicValuesStruct(b"", b"", b"", False),
        PublicValuesStruct(b"k", b"s" * 33, bytes(range(64)), False),
    ):
        assert abi_decode(abi_encode(record)) == record


def test_layout_is_abi_encoded_tuple():
    record = PublicValuesStruct(b"\x01", b"\x02\x03", b"hi", True)
    data = record.abi_encode()

    assert len(data) == 32 + 4 * 32 + 3 * 64
    # offset of the tuple, then the tuple head: three offsets and the bool
    assert _word(data, 0) == 0x20
    assert _word(data, 1) == 0x80
    assert _word(data, 2) == 0xC0
    assert _word(data, 3) == 0x100
    assert _word(data, 4) == 1
    # vrfy_key tail
    assert _word(data, 5) == 1
    assert data[192] == 0x01
    # msg tail
    assert _word(data, 9) == 2
    assert data[320:322] == b"hi"


def test_verified_false_encodes_zero_word():
    data = PublicValuesStruct(b"a", b"b", b"c", False).abi_encode()
    assert _word(data, 4) == 0


@pytest.mark.parametrize(
    "mutate",
    [
        lambda d: b"",
        lambda d: d[:-32],
        lambda d: d + b"\x00" * 32,
        lambda d: d[:159] + b"\x02" + d[160:],
        lambda d: d[:31] + b"\x40" + d[32:],
        lambda d: d[:160] + b"\xff" + d[161:],
        lambda d: d[:32] + b"\xff" * 32 + d[64:],
    ],
    ids=["empty", "truncated", "trailing", "bad-bool", "bad-offset", "huge-length", "huge-offset"],
)
def test_ill_formed_bytes_raise_encoding_error(mutate):
    data = PublicValuesStruct(b"\x01", b"\x02\x03", b"hi", True).abi_encode()
    with pytest.raises(EncodingError):
        abi_decode(mutate(data))


def test_from_verification_rejects_garbage_without_raising():
    record = PublicValuesStruct.from_verification(b"not a key", b"sig", b"msg")
    assert record.verified is False
    assert record.vrfy_key == b"not a key"


def test_from_verification_accepts_valid_signature(keypair, signature, message):
    _, vrfy_key = keypair
    record = PublicValuesStruct.from_verification(vrfy_key, signature, message)
    assert record.verified is True
