"""Shared pytest fixtures for grpc-mtls tests."""

from pathlib import Path
from typing import Generator

import pytest

from grpc_mtls import MemoryStorage, X509Files, new_x509_files, with_storage
from tests.helpers.pki import PkiMaterial, generate_pki

FIXTURES_DIR = Path(__file__).parent / "fixtures"

CERT_PATH = "path/to/certificate"
KEY_PATH = "path/to/key"
CA_PATH = "path/to/certificate-authority"

ENV_VARS = [
    "MTLS_CONFIG_PATH",
    "MTLS_CERT_FILE",
    "MTLS_KEY_FILE",
    "MTLS_CA_FILE",
    "MTLS_ROLE",
    "MTLS_SERVER_NAME_OVERRIDE",
    "MTLS_RELOAD_INTERVAL",
]


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests (no external dependencies)")
    config.addinivalue_line("markers", "integration: Real gRPC handshakes over localhost")


def read_fixture(name: str) -> bytes:
    return (FIXTURES_DIR / name).read_bytes()


@pytest.fixture(scope="session")
def pki() -> PkiMaterial:
    """A CA with server and client leaves, generated once per session."""
    return generate_pki()


@pytest.fixture
def memory_storage(pki: PkiMaterial) -> MemoryStorage:
    """In-memory storage holding the client leaf, its key and the CA."""
    return MemoryStorage({
        CERT_PATH: pki.client_cert_pem,
        KEY_PATH: pki.client_key_pem,
        CA_PATH: pki.ca_pem,
    })


@pytest.fixture
def x509_files(memory_storage: MemoryStorage) -> X509Files:
    return new_x509_files(CERT_PATH, KEY_PATH, CA_PATH, with_storage(memory_storage))


@pytest.fixture
def pem_dir(tmp_path: Path, pki: PkiMaterial) -> Generator[Path, None, None]:
    """A directory on disk with server, client and CA PEM files."""
    certs_dir = tmp_path / "certs"
    certs_dir.mkdir()
    (certs_dir / "ca.crt").write_bytes(pki.ca_pem)
    (certs_dir / "server.crt").write_bytes(pki.server_cert_pem)
    (certs_dir / "server.key").write_bytes(pki.server_key_pem)
    (certs_dir / "client.crt").write_bytes(pki.client_cert_pem)
    (certs_dir / "client.key").write_bytes(pki.client_key_pem)
    yield certs_dir


@pytest.fixture
def clean_env(monkeypatch):
    """Provide a clean environment without MTLS_* config vars."""
    for var in ENV_VARS:
        monkeypatch.delenv(var, raising=False)
