"""Host script: signs a message and runs the signature-verification guest.

Run either a cheap execution of the guest::

    sigzk-prove --execute

or a full Groth16 setup, proof and verification::

    sigzk-prove --prove

The prover is chosen with ``ZKVM_PROVER`` (``cpu`` by default, ``mock`` for an
empty development proof).
"""

import argparse
import logging
import sys
from typing import Optional, Sequence

from sigzk import keys, primitive, zkvm
from sigzk.program import PROGRAM, write_inputs
from sigzk.public_values import EncodingError, PublicValuesStruct
from sigzk.utils import setup_logger

logger = logging.getLogger(__name__)

MESSAGE_TO_SIGN = b"Hello, SP1"


class HostError(Exception):
    pass


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sigzk-prove",
        description="Prove ML-DSA signature verification inside the zkVM guest.",
    )
    parser.add_argument("--execute", action="store_true", help="execute the guest without proving")
    parser.add_argument("--prove", action="store_true", help="generate and verify a proof")
    parser.add_argument(
        "--message",
        default=MESSAGE_TO_SIGN.decode("utf-8"),
        help="message to sign (default: %(default)r)",
    )
    parser.add_argument(
        "--level",
        type=int,
        choices=primitive.LEVELS,
        default=primitive.ML_DSA_44_LEVEL,
        help="ML-DSA parameter set",
    )
    parser.add_argument(
        "--wrong-key",
        action="store_true",
        help="pass the verifying key of an unrelated keypair; the guest must report verified=false",
    )
    parser.add_argument("--proof-out", default=None, help="write the proof as JSON to this path")
    parser.add_argument("--log-level", default=None, help="logging level (default: $ZKVM_LOG or INFO)")
    return parser


def prepare_inputs(message: bytes, level: int, wrong_key: bool = False) -> zkvm.ZKVMStdin:
    sign_key, vrfy_key = keys.generate_keys(level)
    signature = keys.sign_message(sign_key, message)
    if signature is None:
        raise HostError("could not sign the message")

    if wrong_key:
        _, vrfy_key = keys.generate_keys(level)

    return write_inputs(zkvm.ZKVMStdin(), vrfy_key, signature, message)


def run_execute(client: zkvm.Prover, stdin: zkvm.ZKVMStdin, message: bytes, expected: bool) -> PublicValuesStruct:
    output, report = client.execute(PROGRAM, stdin)
    print("Program executed successfully.")

    try:
        decoded = PublicValuesStruct.abi_decode(output.to_vec())
    except EncodingError as exc:
        raise HostError(f"guest committed undecodable public values: {exc}") from exc

    print(f"vrfy_key: {decoded.vrfy_key.hex()[:32]}... ({len(decoded.vrfy_key)} bytes)")
    print(f"signature: {decoded.signature.hex()[:32]}... ({len(decoded.signature)} bytes)")
    print(f"msg: {decoded.msg!r}")
    print(f"verified: {decoded.verified}")

    if decoded.msg != message:
        raise HostError("committed message does not match the signed message")
    if decoded.verified != expected:
        raise HostError(f"expected verified={expected}, guest committed verified={decoded.verified}")
    print("Values are correct!")

    print(f"Number of cycles: {report.total_instruction_count()}")
    return decoded


def run_prove(client: zkvm.Prover, stdin: zkvm.ZKVMStdin, proof_out: Optional[str] = None) -> zkvm.ProofWithPublicValues:
    pk, vk = client.setup(PROGRAM)

    # Generate the proof
    try:
        proof = client.prove(pk, stdin)
    except (zkvm.ProofError, zkvm.ExecutionError) as exc:
        raise HostError(f"failed to generate proof: {exc}") from exc
    print("Successfully generated proof!")

    # Verify the proof.
    try:
        client.verify(proof, vk)
    except zkvm.VerificationError as exc:
        raise HostError(f"failed to verify proof: {exc}") from exc
    print("Successfully verified proof!")

    if proof_out:
        proof.save(proof_out)
        print(f"Proof written to {proof_out}")
    return proof


def run(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.execute == args.prove:
        parser.error("specify exactly one of --execute or --prove")

    setup_logger(args.log_level)

    message = args.message.encode("utf-8")
    try:
        client = zkvm.ProverClient.from_env()
        stdin = prepare_inputs(message, args.level, wrong_key=args.wrong_key)
        print(f"msg: {message!r}")

        if args.execute:
            run_execute(client, stdin, message, expected=not args.wrong_key)
        else:
            run_prove(client, stdin, proof_out=args.proof_out)
    except (HostError, zkvm.ZKVMError, ValueError) as exc:
        logger.error("%s", exc)
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    return 0


def main() -> None:
    sys.exit(run())


if __name__ == "__main__":
    main()
