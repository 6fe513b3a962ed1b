"""Groth16 over BN254, used by the CPU prover to bind committed public values
to a guest program.

The flow mirrors the textbook construction: an R1CS (L, R, O) is interpolated
into a QAP, ``setup`` samples the toxic waste and publishes the SRS, ``prove``
builds (A, B, C) from a satisfying witness and ``verifier`` checks the pairing
equation against the public part of the witness.
"""

import os
import secrets
import tempfile

import numpy as np

cache_dir = os.path.join(tempfile.gettempdir(), "numba_cache")
os.makedirs(cache_dir, exist_ok=True)
os.environ.setdefault("NUMBA_CACHE_DIR", cache_dir)

import galois  # noqa: E402
from galois import Poly, GF  # noqa: E402
from py_ecc.optimized_bn128 import optimized_curve as curve  # noqa: E402
from py_ecc.optimized_bn128 import (  # noqa: E402
    multiply,
    G1,
    G2,
    add,
    normalize,
    curve_order,
    pairing,
)

# p = 21888242871839275222246405745257275088548364400416034343698204186575808495617
p = curve_order
FP = GF(p)


class QAP:
    def __init__(self, L: Poly, R: Poly, O: Poly, T: Poly):
        self.L = L
        self.R = R
        self.O = O
        self.T = T

    @property
    def num_variables(self):
        return self.L.shape[0]


class ProverKey:
    def __init__(
        self,
        tau_G1,
        tau_G2,
        alpha_G1,
        beta_G1,
        beta_G2,
        delta_G1,
        delta_G2,
        K_delta_G1,
        target_G1,
    ):
        self.tau_G1 = tau_G1
        self.tau_G2 = tau_G2
        self.alpha_G1 = alpha_G1
        self.beta_G1 = beta_G1
        self.beta_G2 = beta_G2
        self.delta_G1 = delta_G1
        self.delta_G2 = delta_G2
        self.K_delta_G1 = K_delta_G1
        self.target_G1 = target_G1


class VerifierKey:
    def __init__(self, alpha_G1, beta_G2, gamma_G2, delta_G2, K_gamma_G1):
        self.alpha_G1 = alpha_G1
        self.beta_G2 = beta_G2
        self.gamma_G2 = gamma_G2
        self.delta_G2 = delta_G2
        self.K_gamma_G1 = K_gamma_G1

    @property
    def num_public(self):
        return len(self.K_gamma_G1)


class Proof:
    def __init__(self, A, B, C):
        self.A = A
        self.B = B
        self.C = C

    def to_json_dict(self):
        return {
            "A": serialize_g1(self.A),
            "B": serialize_g2(self.B),
            "C": serialize_g1(self.C),
        }

    @classmethod
    def from_json_dict(cls, data):
        for key in ("A", "B", "C"):
            if key not in data:
                raise ValueError(f"Proof missing required point '{key}'.")
        return cls(
            deserialize_g1(data["A"]),
            deserialize_g2(data["B"]),
            deserialize_g1(data["C"]),
        )


def random_scalar():
    return FP(secrets.randbelow(p - 2) + 2)


def build_qap(L, R, O) -> QAP:
    """Interpolate the R1CS columns over x = 1..n and build the vanishing polynomial."""
    if not (L.shape == R.shape == O.shape):
        raise ValueError("L, R and O must have the same shape.")

    mtxs = [L, R, O]
    poly_m = []

    for m in mtxs:
        poly_list = []
        for i in range(0, m.shape[1]):
            points_x = FP(np.zeros(m.shape[0], dtype=int))
            points_y = FP(np.zeros(m.shape[0], dtype=int))
            for j in range(0, m.shape[0]):
                points_x[j] = FP(j + 1)
                points_y[j] = m[j][i]

            poly = galois.lagrange_poly(points_x, points_y)
            coef = poly.coefficients()[::-1]
            if len(coef) < m.shape[0]:
                coef = np.append(coef, np.zeros(m.shape[0] - len(coef), dtype=int))
            poly_list.append(coef)

        poly_m.append(FP(poly_list))

    T = galois.Poly([1, p - 1], field=FP)
    for i in range(2, L.shape[0] + 1):
        T *= galois.Poly([1, p - i], field=FP)

    return QAP(poly_m[0], poly_m[1], poly_m[2], T)


def is_satisfied(L, R, O, w) -> bool:
    return bool(np.all(np.equal(np.matmul(L, w) * np.matmul(R, w), np.matmul(O, w))))


def setup(qap: QAP, num_public: int):
    if num_public < 1 or num_public > qap.num_variables:
        raise ValueError(
            f"num_public must be in [1, {qap.num_variables}], got {num_public}"
        )

    # generating toxic waste
    alpha = random_scalar()
    beta = random_scalar()
    gamma = random_scalar()
    delta = random_scalar()
    tau = random_scalar()

    beta_L = beta * qap.L
    alpha_R = alpha * qap.R
    K = beta_L + alpha_R + qap.O
    Kp = to_poly(K)
    K_eval = evaluate_poly_list(Kp, tau)

    T_tau = qap.T(tau)

    pow_tauTtau_div_delta = [
        (tau ** i * T_tau) / delta for i in range(0, qap.T.degree - 1)
    ]
    target_G1 = [multiply(G1, int(pTd)) for pTd in pow_tauTtau_div_delta]

    K_gamma = [k / gamma for k in K_eval[:num_public]]
    K_delta = [k / delta for k in K_eval[num_public:]]

    # generating SRS
    tau_G1 = [multiply(G1, int(tau ** i)) for i in range(0, qap.T.degree)]
    tau_G2 = [multiply(G2, int(tau ** i)) for i in range(0, qap.T.degree)]
    alpha_G1 = multiply(G1, int(alpha))
    beta_G1 = multiply(G1, int(beta))
    beta_G2 = multiply(G2, int(beta))
    gamma_G2 = multiply(G2, int(gamma))
    delta_G1 = multiply(G1, int(delta))
    delta_G2 = multiply(G2, int(delta))
    K_gamma_G1 = [multiply(G1, int(k)) for k in K_gamma]
    K_delta_G1 = [multiply(G1, int(k)) for k in K_delta]

    pk = ProverKey(
        tau_G1,
        tau_G2,
        alpha_G1,
        beta_G1,
        beta_G2,
        delta_G1,
        delta_G2,
        K_delta_G1,
        target_G1,
    )

    vk = VerifierKey(alpha_G1, beta_G2, gamma_G2, delta_G2, K_gamma_G1)

    return pk, vk


def prove(pk: ProverKey, w, qap: QAP) -> Proof:
    r = random_scalar()
    s = random_scalar()

    w_priv = w[len(w) - len(pk.K_delta_G1):]

    U = Poly((w @ qap.L)[::-1])
    V = Poly((w @ qap.R)[::-1])
    W = Poly((w @ qap.O)[::-1])

    H = (U * V - W) // qap.T
    rem = (U * V - W) % qap.T

    if rem != 0:
        raise ValueError("Witness does not satisfy the constraint system.")

    # [K/δ*w]G1
    Kw_delta_G1 = _linear_combination(pk.K_delta_G1, w_priv)

    r_delta_G1 = multiply(pk.delta_G1, int(r))
    s_delta_G1 = multiply(pk.delta_G1, int(s))
    s_delta_G2 = multiply(pk.delta_G2, int(s))

    A_G1 = evaluate_poly(U, pk.tau_G1)
    A_G1 = add(A_G1, pk.alpha_G1)
    A_G1 = add(A_G1, r_delta_G1)

    B_G2 = evaluate_poly(V, pk.tau_G2)
    B_G2 = add(B_G2, pk.beta_G2)
    B_G2 = add(B_G2, s_delta_G2)

    B_G1 = evaluate_poly(V, pk.tau_G1)
    B_G1 = add(B_G1, pk.beta_G1)
    B_G1 = add(B_G1, s_delta_G1)

    As_G1 = multiply(A_G1, int(s))
    Br_G1 = multiply(B_G1, int(r))
    rs_delta_G1 = multiply(pk.delta_G1, int(-r * s))

    HT_G1 = evaluate_poly(H, pk.target_G1)

    C_G1 = add(Kw_delta_G1, HT_G1)
    C_G1 = add(C_G1, As_G1)
    C_G1 = add(C_G1, Br_G1)
    C_G1 = add(C_G1, rs_delta_G1)

    return Proof(A_G1, B_G2, C_G1)


def verifier(vk: VerifierKey, w_pub, proof: Proof) -> bool:
    if len(w_pub) != vk.num_public:
        return False
    for point, group in ((proof.A, curve.b), (proof.B, curve.b2), (proof.C, curve.b)):
        if not curve.is_on_curve(point, group):
            return False

    e1 = pairing(proof.B, proof.A)
    e2 = pairing(vk.beta_G2, vk.alpha_G1)

    # [K/γ*w]G1
    Kw_gamma_G1 = _linear_combination(vk.K_gamma_G1, w_pub)

    e3 = pairing(vk.gamma_G2, Kw_gamma_G1)
    e4 = pairing(vk.delta_G2, proof.C)

    return e1 == e2 * e3 * e4


def get_witness_public(pk: ProverKey, w):
    return w[:len(w) - len(pk.K_delta_G1)]


def to_poly(mtx):
    poly_list = []
    for i in range(0, mtx.shape[0]):
        poly_list.append(Poly(mtx[i][::-1]))
    return poly_list


def evaluate_poly_list(poly_list, x):
    results = []
    for poly in poly_list:
        results.append(poly(x))
    return results


def evaluate_poly(poly: Poly, trusted_points):
    coeffs = poly.coefficients()[::-1]
    if len(coeffs) > len(trusted_points):
        raise ValueError("Polynomial degree exceeds basis size.")
    return _linear_combination(trusted_points, coeffs)


def _linear_combination(points, scalars):
    acc = curve.Z1 if len(points) == 0 or _is_g1(points[0]) else curve.Z2
    for point, scalar in zip(points, scalars):
        scalar_int = int(scalar) % p
        if scalar_int == 0:
            continue
        acc = add(acc, multiply(point, scalar_int))
    return acc


def _is_g1(point):
    return isinstance(point[0], curve.FQ)


# ---------------------------------------------------------------------------
# Point (de)serialization
# ---------------------------------------------------------------------------
def _fq_int(value):
    return int(getattr(value, "n", value))


def _to_int(value):
    if isinstance(value, str):
        value = value.strip()
        base = 16 if value.startswith("0x") else 10
        return int(value, base)
    return int(value)


def serialize_g1(point):
    x, y = normalize(point)
    return [str(_fq_int(x)), str(_fq_int(y))]


def serialize_g2(point):
    x, y = normalize(point)
    return [
        [str(_fq_int(x.coeffs[0])), str(_fq_int(x.coeffs[1]))],
        [str(_fq_int(y.coeffs[0])), str(_fq_int(y.coeffs[1]))],
    ]


def deserialize_g1(coords):
    if len(coords) != 2:
        raise ValueError("G1 point must have two coordinates.")
    x, y = (_to_int(c) % curve.field_modulus for c in coords)
    return (curve.FQ(x), curve.FQ(y), curve.FQ.one())


def deserialize_g2(coords):
    if len(coords) != 2 or any(len(c) != 2 for c in coords):
        raise ValueError("G2 point must have two FQ2 coordinates.")
    x_coeffs = [_to_int(c) % curve.field_modulus for c in coords[0]]
    y_coeffs = [_to_int(c) % curve.field_modulus for c in coords[1]]
    return (
        curve.FQ2(x_coeffs),
        curve.FQ2(y_coeffs),
        curve.FQ2([1, 0]),
    )
