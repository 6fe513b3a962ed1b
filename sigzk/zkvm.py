"""A small zkVM-style runtime: guest I/O, programs and provers.

A guest program is a plain function ``main(env)``. It reads its inputs from
``env`` in order and commits its public output exactly once. Provers run the
guest through :meth:`Prover.execute` and, for ``prove``, attach a proof that
binds the committed bytes to the program digest.

The Groth16 proof does not attest that the guest ran. Its witness is computed
from public data alone, so anyone holding the proving key can prove any record
for the program, including ``verified=True`` for a signature that does not
verify. Treat a verified proof as integrity of the committed bytes only.

Input wire format (little-endian)::

    b"ZKIN" | u16 version | u32 frame count | frames...
    frame = u8 tag length | tag | u32 data length | data
"""

from __future__ import annotations

import abc
import hashlib
import inspect
import json
import logging
import os
import struct
import sys
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from sigzk import binding, groth16

logger = logging.getLogger(__name__)

STDIN_MAGIC = b"ZKIN"
STDIN_VERSION = 1
PROOF_FORMAT_VERSION = 1

MODE_GROTH16 = "groth16"
MODE_MOCK = "mock"

PROVER_ENV = "ZKVM_PROVER"


class ZKVMError(Exception):
    pass


class FramingError(ZKVMError):
    """The guest's input/output protocol was violated."""


class ExecutionError(ZKVMError):
    pass


class ProofError(ZKVMError):
    pass


class VerificationError(ZKVMError):
    pass


# ---------------------------------------------------------------------------
# Input channel
# ---------------------------------------------------------------------------
class ZKVMStdin:
    """Ordered, append-only input frames for a guest."""

    def __init__(self):
        self.frames: List[Tuple[str, bytes]] = []

    def write_vec(self, data: bytes, tag: str = "") -> None:
        tag_bytes = tag.encode("ascii")
        if len(tag_bytes) > 255:
            raise ValueError("frame tag must be at most 255 bytes")
        self.frames.append((tag, bytes(data)))

    def __len__(self):
        return len(self.frames)

    def to_bytes(self) -> bytes:
        out = bytearray(STDIN_MAGIC)
        out += struct.pack("<HI", STDIN_VERSION, len(self.frames))
        for tag, data in self.frames:
            tag_bytes = tag.encode("ascii")
            out += struct.pack("<B", len(tag_bytes)) + tag_bytes
            out += struct.pack("<I", len(data)) + data
        return bytes(out)

    @classmethod
    def from_bytes(cls, raw: bytes) -> "ZKVMStdin":
        reader = _Reader(raw)
        if reader.take(len(STDIN_MAGIC)) != STDIN_MAGIC:
            raise FramingError("input is not a zkVM stdin stream")
        version, count = struct.unpack("<HI", reader.take(6))
        if version != STDIN_VERSION:
            raise FramingError(f"unsupported input schema version {version}")
        stdin = cls()
        for _ in range(count):
            (tag_len,) = struct.unpack("<B", reader.take(1))
            try:
                tag = reader.take(tag_len).decode("ascii")
            except UnicodeDecodeError as exc:
                raise FramingError("input frame tag is not ASCII") from exc
            (data_len,) = struct.unpack("<I", reader.take(4))
            stdin.write_vec(reader.take(data_len), tag=tag)
        if not reader.at_end():
            raise FramingError("trailing bytes after the last input frame")
        return stdin


class _Reader:
    def __init__(self, raw: bytes):
        self.raw = bytes(raw)
        self.pos = 0

    def take(self, n: int) -> bytes:
        if self.pos + n > len(self.raw):
            raise FramingError("input stream ended inside a frame")
        chunk = self.raw[self.pos:self.pos + n]
        self.pos += n
        return chunk

    def at_end(self) -> bool:
        return self.pos == len(self.raw)


# ---------------------------------------------------------------------------
# Guest environment
# ---------------------------------------------------------------------------
class GuestEnv:
    """What the guest sees: ordered reads and a single commit."""

    def __init__(self, stdin_bytes: bytes):
        self._frames = ZKVMStdin.from_bytes(stdin_bytes).frames
        self._cursor = 0
        self._committed: Optional[bytes] = None
        self.bytes_read = 0
        self.syscalls = {"read": 0, "commit": 0}

    def read_vec(self, tag: str = "") -> bytes:
        self.syscalls["read"] += 1
        if self._cursor >= len(self._frames):
            raise FramingError(f"read past end of input (wanted {tag or 'a frame'})")
        frame_tag, data = self._frames[self._cursor]
        if tag and frame_tag != tag:
            raise FramingError(
                f"input frame {self._cursor} is tagged {frame_tag!r}, expected {tag!r}"
            )
        self._cursor += 1
        self.bytes_read += len(data)
        return data

    def commit_slice(self, data: bytes) -> None:
        self.syscalls["commit"] += 1
        if self._committed is not None:
            raise FramingError("public values were already committed")
        self._committed = bytes(data)

    def finish(self) -> bytes:
        remaining = len(self._frames) - self._cursor
        if remaining:
            raise FramingError(f"guest left {remaining} input frame(s) unread")
        if self._committed is None:
            raise FramingError("guest returned without committing public values")
        return self._committed


# ---------------------------------------------------------------------------
# Programs, outputs and reports
# ---------------------------------------------------------------------------
@dataclass
class Program:
    name: str
    entrypoint: Callable[[GuestEnv], None]
    modules: Sequence[Any] = ()
    digest: bytes = field(init=False)

    def __post_init__(self) -> None:
        h = hashlib.sha256(self.name.encode("utf-8"))
        for module in self.modules:
            source = inspect.getsource(module).encode("utf-8")
            h.update(struct.pack("<I", len(source)))
            h.update(source)
        self.digest = h.digest()


@dataclass(frozen=True)
class PublicValues:
    buffer: bytes

    def to_vec(self) -> bytes:
        return self.buffer

    def hash(self) -> bytes:
        return hashlib.sha256(self.buffer).digest()

    def hex(self) -> str:
        return "0x" + self.buffer.hex()


@dataclass
class ExecutionReport:
    """Cost of one guest run.

    ``cycles`` counts the Python call events executed while the guest ran,
    including calls into the signature library.
    """

    cycles: int
    syscalls: Dict[str, int]
    bytes_read: int
    bytes_committed: int
    seconds: float

    def total_instruction_count(self) -> int:
        return self.cycles


def _run_guest(program: Program, stdin: ZKVMStdin) -> Tuple[PublicValues, ExecutionReport]:
    env = GuestEnv(stdin.to_bytes())
    calls = 0

    def tracer(frame, event, arg):
        nonlocal calls
        if event == "call":
            calls += 1
        return None

    previous = sys.gettrace()
    start = time.perf_counter()
    sys.settrace(tracer)
    try:
        program.entrypoint(env)
    finally:
        sys.settrace(previous)
    elapsed = time.perf_counter() - start

    committed = env.finish()
    report = ExecutionReport(
        cycles=calls,
        syscalls=dict(env.syscalls),
        bytes_read=env.bytes_read,
        bytes_committed=len(committed),
        seconds=elapsed,
    )
    return PublicValues(committed), report


# ---------------------------------------------------------------------------
# Keys and proofs
# ---------------------------------------------------------------------------
@dataclass
class ProvingKey:
    program: Program
    groth16_pk: Optional[groth16.ProverKey] = None


@dataclass
class VerifyingKey:
    program_digest: bytes
    groth16_vk: Optional[groth16.VerifierKey] = None

    def bytes32(self) -> str:
        return "0x" + self.program_digest.hex()


@dataclass
class ProofWithPublicValues:
    mode: str
    program_digest: bytes
    public_values: PublicValues
    proof: Optional[groth16.Proof] = None

    def to_json_dict(self) -> Dict[str, Any]:
        return {
            "version": PROOF_FORMAT_VERSION,
            "mode": self.mode,
            "program_digest": self.program_digest.hex(),
            "public_values": self.public_values.buffer.hex(),
            "proof": self.proof.to_json_dict() if self.proof is not None else None,
        }

    @classmethod
    def from_json_dict(cls, data: Dict[str, Any]) -> "ProofWithPublicValues":
        if not isinstance(data, dict):
            raise ValueError(f"proof file must hold a JSON object, got {type(data).__name__}")
        version = int(data.get("version", -1))
        if version != PROOF_FORMAT_VERSION:
            raise ValueError(
                f"proof format version mismatch: expected {PROOF_FORMAT_VERSION}, got {version}"
            )
        try:
            raw_proof = data.get("proof")
            return cls(
                mode=data["mode"],
                program_digest=bytes.fromhex(data["program_digest"]),
                public_values=PublicValues(bytes.fromhex(data["public_values"])),
                proof=groth16.Proof.from_json_dict(raw_proof) if raw_proof is not None else None,
            )
        except KeyError as exc:
            raise ValueError(f"proof file missing required field {exc}") from exc
        except (TypeError, AttributeError) as exc:
            raise ValueError(f"proof file is malformed: {exc}") from exc

    def save(self, path) -> None:
        path = Path(path)
        path.write_text(json.dumps(self.to_json_dict(), indent=2, sort_keys=True) + "\n", encoding="utf-8")

    @classmethod
    def load(cls, path) -> "ProofWithPublicValues":
        path = Path(path)
        with path.open("r", encoding="utf-8") as infile:
            return cls.from_json_dict(json.load(infile))


# ---------------------------------------------------------------------------
# Provers
# ---------------------------------------------------------------------------
class Prover(abc.ABC):
    mode = ""

    def execute(self, program: Program, stdin: ZKVMStdin) -> Tuple[PublicValues, ExecutionReport]:
        logger.info("executing %s with %d input frame(s)", program.name, len(stdin))
        try:
            public_values, report = _run_guest(program, stdin)
        except FramingError as exc:
            raise ExecutionError(f"guest {program.name} aborted: {exc}") from exc
        logger.info("execution finished: %d cycles, %d bytes committed", report.cycles, report.bytes_committed)
        return public_values, report

    @abc.abstractmethod
    def setup(self, program: Program) -> Tuple[ProvingKey, VerifyingKey]:
        ...

    @abc.abstractmethod
    def prove(self, pk: ProvingKey, stdin: ZKVMStdin) -> ProofWithPublicValues:
        ...

    @abc.abstractmethod
    def verify(self, proof: ProofWithPublicValues, vk: VerifyingKey) -> None:
        ...

    def _check_program(self, proof: ProofWithPublicValues, vk: VerifyingKey) -> None:
        if proof.mode != self.mode:
            raise VerificationError(f"{self.mode} prover cannot verify a {proof.mode} proof")
        if proof.program_digest != vk.program_digest:
            raise VerificationError("proof was generated for a different program")


class CpuProver(Prover):
    """Groth16 proofs over the binding circuit, computed locally.

    The proof ties the public values to the program digest. It says nothing
    about whether the guest produced them: a holder of the proving key can
    prove an arbitrary record without executing anything.
    """

    mode = MODE_GROTH16

    def setup(self, program):
        logger.info("running Groth16 setup for %s", program.name)
        pk, vk = groth16.setup(binding.qap(), binding.NUM_PUBLIC)
        return ProvingKey(program, pk), VerifyingKey(program.digest, vk)

    def prove(self, pk, stdin):
        if pk.groth16_pk is None:
            raise ProofError("proving key has no Groth16 material; run setup with the CPU prover")
        public_values, _ = self.execute(pk.program, stdin)
        try:
            w = binding.witness(public_values.buffer, pk.program.digest)
            proof = groth16.prove(pk.groth16_pk, w, binding.qap())
        except ValueError as exc:
            raise ProofError(f"failed to generate proof: {exc}") from exc
        return ProofWithPublicValues(self.mode, pk.program.digest, public_values, proof)

    def verify(self, proof, vk):
        self._check_program(proof, vk)
        if proof.proof is None or vk.groth16_vk is None:
            raise VerificationError("missing Groth16 proof or verifying key")
        w_pub = binding.public_inputs(proof.public_values.buffer, vk.program_digest)
        if not groth16.verifier(vk.groth16_vk, w_pub, proof.proof):
            raise VerificationError("Groth16 pairing check failed")


class MockProver(Prover):
    """Executes the guest but produces no cryptographic proof."""

    mode = MODE_MOCK

    def setup(self, program):
        return ProvingKey(program), VerifyingKey(program.digest)

    def prove(self, pk, stdin):
        public_values, _ = self.execute(pk.program, stdin)
        return ProofWithPublicValues(self.mode, pk.program.digest, public_values)

    def verify(self, proof, vk):
        self._check_program(proof, vk)
        if proof.proof is not None:
            raise VerificationError("mock proofs carry no proof data")


class ProverClient:
    _PROVERS = {"cpu": CpuProver, "mock": MockProver}

    @classmethod
    def from_env(cls) -> Prover:
        name = os.environ.get(PROVER_ENV, "cpu").strip().lower()
        if name not in cls._PROVERS:
            raise ValueError(
                f"{PROVER_ENV}={name!r} is not supported, expected one of {sorted(cls._PROVERS)}"
            )
        logger.debug("using %s prover", name)
        return cls._PROVERS[name]()

    @staticmethod
    def cpu() -> Prover:
        return CpuProver()

    @staticmethod
    def mock() -> Prover:
        return MockProver()
