"""
PEM parsing for leaf key pairs and certificate-authority trust pools.
"""

import re
from dataclasses import dataclass
from typing import Iterator, Union

from cryptography import x509
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec, ed25519, rsa
from cryptography.hazmat.primitives.serialization import (
    Encoding,
    NoEncryption,
    PrivateFormat,
    PublicFormat,
    load_pem_private_key,
)

from .errors import CredentialParseError, ParseFailure

PrivateKey = Union[
    rsa.RSAPrivateKey,
    ec.EllipticCurvePrivateKey,
    ed25519.Ed25519PrivateKey,
]

# Same set of key algorithms gRPC's TLS stack accepts for a leaf identity
SUPPORTED_KEY_TYPES = (
    rsa.RSAPrivateKey,
    ec.EllipticCurvePrivateKey,
    ed25519.Ed25519PrivateKey,
)

_PEM_BLOCK_RE = re.compile(
    rb"-----BEGIN ([A-Z0-9 ]+)-----\r?\n(?:(?!-----BEGIN ).)*?-----END \1-----",
    re.DOTALL,
)


def iter_pem_blocks(data: bytes) -> Iterator[tuple[str, bytes]]:
    """Yield (label, block) for every PEM block in data.

    Text outside of BEGIN/END markers is ignored, as are unterminated
    blocks. Each yielded block includes its own markers so it can be
    handed straight to a cryptography loader.
    """
    for match in _PEM_BLOCK_RE.finditer(data):
        yield match.group(1).decode("ascii"), match.group(0) + b"\n"


def _fingerprint(cert: x509.Certificate) -> str:
    return cert.fingerprint(hashes.SHA256()).hex().upper()


def _public_key_der(key) -> bytes:
    return key.public_bytes(Encoding.DER, PublicFormat.SubjectPublicKeyInfo)


@dataclass(frozen=True)
class KeyPair:
    """A leaf certificate chain and its matching private key.

    Attributes:
        certificates: Certificate chain, leaf first
        private_key: Private key matching the leaf's public key
    """
    certificates: tuple[x509.Certificate, ...]
    private_key: PrivateKey

    @property
    def leaf(self) -> x509.Certificate:
        return self.certificates[0]

    @property
    def fingerprint(self) -> str:
        """SHA256 fingerprint of the leaf certificate."""
        return _fingerprint(self.leaf)

    def certificate_chain_pem(self) -> bytes:
        return b"".join(cert.public_bytes(Encoding.PEM) for cert in self.certificates)

    def private_key_pem(self) -> bytes:
        """The private key as unencrypted PKCS8 PEM."""
        return self.private_key.private_bytes(
            encoding=Encoding.PEM,
            format=PrivateFormat.PKCS8,
            encryption_algorithm=NoEncryption(),
        )


def load_key_pair(cert_pem: bytes, key_pem: bytes) -> KeyPair:
    """Parse a PEM certificate chain and a PEM private key into a KeyPair.

    Every CERTIFICATE block in cert_pem becomes part of the chain; the first
    is the leaf. The first block in key_pem whose label ends with
    "PRIVATE KEY" is used as the key, so files carrying extra blocks
    (e.g. EC PARAMETERS) are accepted.

    Args:
        cert_pem: PEM certificate chain
        key_pem: PEM private key (PKCS1, SEC1 or PKCS8, unencrypted)

    Returns:
        The validated key pair

    Raises:
        CredentialParseError: If either side is malformed, the key is
            encrypted or of an unsupported type, or the key does not
            belong to the leaf certificate
    """
    certificates = []
    for label, block in iter_pem_blocks(cert_pem):
        if label != "CERTIFICATE":
            continue
        try:
            certificates.append(x509.load_pem_x509_certificate(block))
        except ValueError as e:
            raise CredentialParseError(
                ParseFailure.KEY_PAIR, f"invalid certificate: {e}"
            ) from e

    if not certificates:
        raise CredentialParseError(
            ParseFailure.KEY_PAIR, "no certificate found in certificate data"
        )

    key_block = next(
        (block for label, block in iter_pem_blocks(key_pem) if label.endswith("PRIVATE KEY")),
        None,
    )
    if key_block is None:
        raise CredentialParseError(ParseFailure.KEY_PAIR, "no private key found in key data")

    try:
        private_key = load_pem_private_key(key_block, password=None)
    except TypeError as e:
        raise CredentialParseError(
            ParseFailure.KEY_PAIR, "encrypted private keys are not supported"
        ) from e
    except (ValueError, UnsupportedAlgorithm) as e:
        raise CredentialParseError(ParseFailure.KEY_PAIR, f"invalid private key: {e}") from e

    if not isinstance(private_key, SUPPORTED_KEY_TYPES):
        raise CredentialParseError(
            ParseFailure.KEY_PAIR,
            f"unsupported private key type {type(private_key).__name__}",
        )

    try:
        leaf_public = _public_key_der(certificates[0].public_key())
    except (ValueError, UnsupportedAlgorithm) as e:
        raise CredentialParseError(
            ParseFailure.KEY_PAIR, f"unsupported certificate public key: {e}"
        ) from e

    if leaf_public != _public_key_der(private_key.public_key()):
        raise CredentialParseError(
            ParseFailure.KEY_PAIR, "private key does not match public key"
        )

    return KeyPair(certificates=tuple(certificates), private_key=private_key)


class TrustPool:
    """A set of CA certificates used to verify a peer's chain."""

    def __init__(self):
        self._certificates: list[x509.Certificate] = []
        self._fingerprints: set[str] = set()

    def add_certificate(self, cert: x509.Certificate) -> None:
        fingerprint = _fingerprint(cert)
        if fingerprint in self._fingerprints:
            return
        self._fingerprints.add(fingerprint)
        self._certificates.append(cert)

    def append_certs_from_pem(self, data: bytes) -> bool:
        """Add every parseable CERTIFICATE block in data to the pool.

        Blocks that fail to parse and blocks of any other type are skipped.

        Returns:
            True if at least one certificate was parsed
        """
        ok = False
        for label, block in iter_pem_blocks(data):
            if label != "CERTIFICATE":
                continue
            try:
                cert = x509.load_pem_x509_certificate(block)
            except ValueError:
                continue
            self.add_certificate(cert)
            ok = True
        return ok

    def subjects(self) -> list[x509.Name]:
        return [cert.subject for cert in self._certificates]

    def to_pem(self) -> bytes:
        """The pool as a concatenated PEM bundle."""
        return b"".join(cert.public_bytes(Encoding.PEM) for cert in self._certificates)

    def __len__(self) -> int:
        return len(self._certificates)

    def __iter__(self) -> Iterator[x509.Certificate]:
        return iter(list(self._certificates))

    def __repr__(self) -> str:
        return f"TrustPool({len(self)} certificates)"


def load_trust_pool(ca_pem: bytes) -> TrustPool:
    """Build a fresh TrustPool from a PEM CA bundle.

    Raises:
        CredentialParseError: If the bundle yields no certificate
    """
    pool = TrustPool()
    if not pool.append_certs_from_pem(ca_pem):
        raise CredentialParseError(
            ParseFailure.CERTIFICATE_AUTHORITY, "no valid certificate in bundle"
        )
    return pool
