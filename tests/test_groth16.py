import pytest

from sigzk import binding, groth16

FP = groth16.FP
p = groth16.p


# f(x,y) = 5*x^3 - 4*x^2*y^2 + 13*x*y^2 + x^2 - 10y
def _witness(x, y):
    _x = FP(x)
    _y = FP(y)
    _v1 = _x * _x
    _v2 = _y * _y
    _v3 = 5 * _x * _v1
    _v4 = 4 * _v1 * _v2
    out = 5*_x**3 - 4*_x**2*_y**2 + 13*_x*_y**2 + _x**2 - 10*_y
    return FP([1, int(out), int(_x), int(_y), int(_v1), int(_v2), int(_v3), int(_v4)])


R = FP([[0, 0, 1, 0, 0, 0, 0, 0],
        [0, 0, 0, 1, 0, 0, 0, 0],
        [0, 0, 5, 0, 0, 0, 0, 0],
        [0, 0, 0, 0, 4, 0, 0, 0],
        [0, 0, 13, 0, 0, 0, 0, 0]])

L = FP([[0, 0, 1, 0, 0, 0, 0, 0],
        [0, 0, 0, 1, 0, 0, 0, 0],
        [0, 0, 0, 0, 1, 0, 0, 0],
        [0, 0, 0, 0, 0, 1, 0, 0],
        [0, 0, 0, 0, 0, 1, 0, 0]])

O = FP([[0, 0, 0, 0, 1, 0, 0, 0],
        [0, 0, 0, 0, 0, 1, 0, 0],
        [0, 0, 0, 0, 0, 0, 1, 0],
        [0, 0, 0, 0, 0, 0, 0, 1],
        [0, 1, 0, 10, p - 1, 0, p - 1, 1]])


@pytest.fixture(scope="module")
def polynomial_keys():
    qap = groth16.build_qap(L, R, O)
    pk, vk = groth16.setup(qap, num_public=2)
    return qap, pk, vk


def test_r1cs_is_satisfied_by_witness():
    assert groth16.is_satisfied(L, R, O, _witness(2, 3))
    bad = _witness(2, 3)
    bad[1] = bad[1] + FP(1)
    assert not groth16.is_satisfied(L, R, O, bad)


def test_prove_and_verify_two_witnesses(polynomial_keys):
    qap, pk, vk = polynomial_keys
    for x, y in ((2, 3), (4, 5)):
        w = _witness(x, y)
        proof = groth16.prove(pk, w, qap)
        assert groth16.verifier(vk, groth16.get_witness_public(pk, w), proof)


def test_wrong_public_output_is_rejected(polynomial_keys):
    qap, pk, vk = polynomial_keys
    w = _witness(2, 3)
    proof = groth16.prove(pk, w, qap)
    w_pub = groth16.get_witness_public(pk, w)
    w_pub[1] = w_pub[1] + FP(1)
    assert not groth16.verifier(vk, w_pub, proof)


def test_unsatisfying_witness_is_refused(polynomial_keys):
    qap, pk, _ = polynomial_keys
    w = _witness(2, 3)
    w[7] = w[7] + FP(1)
    with pytest.raises(ValueError):
        groth16.prove(pk, w, qap)


def test_setup_rejects_bad_public_count():
    qap = groth16.build_qap(L, R, O)
    with pytest.raises(ValueError):
        groth16.setup(qap, num_public=0)


def test_binding_proof_survives_serialization():
    qap = binding.qap()
    pk, vk = groth16.setup(qap, binding.NUM_PUBLIC)
    w = binding.witness(b"public values", b"program")
    proof = groth16.prove(pk, w, qap)

    restored = groth16.Proof.from_json_dict(proof.to_json_dict())
    assert groth16.verifier(vk, binding.public_inputs(b"public values", b"program"), restored)
    assert not groth16.verifier(vk, binding.public_inputs(b"other values", b"program"), restored)
    assert not groth16.verifier(vk, binding.public_inputs(b"public values", b"other"), restored)


def test_binding_witness_refuses_unsatisfied_constraints(monkeypatch):
    monkeypatch.setattr(groth16, "is_satisfied", lambda L, R, O, w: False)
    with pytest.raises(ValueError):
        binding.witness(b"public values", b"program")


def test_malformed_points_are_rejected():
    with pytest.raises(ValueError):
        groth16.deserialize_g1(["1"])
    with pytest.raises(ValueError):
        groth16.deserialize_g2([["1", "2"], ["3"]])
    with pytest.raises(ValueError):
        groth16.Proof.from_json_dict({"A": ["1", "2"]})
