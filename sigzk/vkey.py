"""Prints the verifying key fingerprint of the guest program."""

from sigzk import zkvm
from sigzk.program import PROGRAM


def main() -> None:
    prover = zkvm.ProverClient.mock()
    _, vk = prover.setup(PROGRAM)
    print(vk.bytes32())


if __name__ == "__main__":
    main()
