"""Zero-knowledge proofs that an ML-DSA signature verifies."""
