"""R1CS that ties a guest's committed public values to the program digest.

Witness layout: ``[1, r, d, v, u]`` where ``r`` is the field image of the
public-values digest, ``d`` the field image of the program digest, and

    r * d = v
    v * r = u

The first three entries are public, ``v`` and ``u`` stay private. Both public
digests enter the constraints, so a proof made for one pair of digests does not
verify against another.
"""

import hashlib

from sigzk import groth16

FP = groth16.FP
p = groth16.p

NUM_PUBLIC = 3

# ============================================== R1CS =============================================
L = FP([[0, 1, 0, 0, 0],
        [0, 0, 0, 1, 0]])

R = FP([[0, 0, 1, 0, 0],
        [0, 1, 0, 0, 0]])

O = FP([[0, 0, 0, 1, 0],
        [0, 0, 0, 0, 1]])

_qap = None


def qap() -> groth16.QAP:
    global _qap
    if _qap is None:
        _qap = groth16.build_qap(L, R, O)
    return _qap


def digest_to_field(digest: bytes):
    return FP(int.from_bytes(hashlib.sha256(digest).digest(), "big") % p)


def public_inputs(public_values: bytes, program_digest: bytes):
    r = digest_to_field(public_values)
    d = digest_to_field(program_digest)
    return FP([1, int(r), int(d)])


def witness(public_values: bytes, program_digest: bytes):
    r = digest_to_field(public_values)
    d = digest_to_field(program_digest)
    v = r * d
    u = v * r
    w = FP([1, int(r), int(d), int(v), int(u)])
    if not groth16.is_satisfied(L, R, O, w):
        raise ValueError("Binding witness does not satisfy the constraint system.")
    return w
