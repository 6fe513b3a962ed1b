from __future__ import annotations

import sys
from pathlib import Path

import pytest

# Ensure repo root is importable for all tests, regardless of install mode.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from sigzk import keys, zkvm  # noqa: E402
from sigzk.program import write_inputs  # noqa: E402

MESSAGE = b"Hello, SP1"


@pytest.fixture(scope="session")
def message():
    return MESSAGE


@pytest.fixture(scope="session")
def keypair():
    return keys.generate_keys()


@pytest.fixture(scope="session")
def other_keypair():
    return keys.generate_keys()


@pytest.fixture(scope="session")
def signature(keypair, message):
    sign_key, _ = keypair
    sig = keys.sign_message(sign_key, message)
    assert sig is not None
    return sig


@pytest.fixture
def valid_stdin(keypair, signature, message):
    _, vrfy_key = keypair
    return write_inputs(zkvm.ZKVMStdin(), vrfy_key, signature, message)


@pytest.fixture
def mock_prover():
    return zkvm.ProverClient.mock()
