"""Guest program: verifies an ML-DSA signature and commits the outcome.

Inputs are read in a fixed order, ``verifying_key``, ``signature`` and
``message``; the committed output is the ABI-encoded ``PublicValuesStruct``.
"""

import sys

from sigzk import primitive, public_values, zkvm
from sigzk.public_values import PublicValuesStruct

INPUT_TAGS = ("verifying_key", "signature", "message")


def main(env: zkvm.GuestEnv) -> None:
    vrfy_key = env.read_vec(INPUT_TAGS[0])
    signature = env.read_vec(INPUT_TAGS[1])
    msg = env.read_vec(INPUT_TAGS[2])

    record = PublicValuesStruct.from_verification(vrfy_key, signature, msg)

    # The proof commits to every byte passed here.
    env.commit_slice(record.abi_encode())


def write_inputs(stdin: zkvm.ZKVMStdin, vrfy_key: bytes, signature: bytes, msg: bytes) -> zkvm.ZKVMStdin:
    for tag, data in zip(INPUT_TAGS, (vrfy_key, signature, msg)):
        stdin.write_vec(data, tag=tag)
    return stdin


PROGRAM = zkvm.Program(
    "sigzk-program",
    main,
    modules=(sys.modules[__name__], public_values, primitive),
)
