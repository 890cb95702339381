"""
grpc-mtls - mutual TLS transport credentials for gRPC.

This package builds client or server mTLS credentials from a PEM
certificate, private key and CA bundle read through a pluggable storage
backend.
"""

from .config import MTLSConfig, load_config
from .credentials import ProtocolInfo, TransportCredentials
from .errors import (
    Artifact,
    CredentialConfigError,
    CredentialIOError,
    CredentialParseError,
    MTLSError,
    ParseFailure,
    is_retryable_error,
)
from .pem import KeyPair, TrustPool, load_key_pair, load_trust_pool
from .policy import ClientAuth, Role, TlsPolicy, build_policy
from .reloader import CredentialReloader
from .storage import MemoryStorage, OsStorage, Storage
from .x509_files import X509Files, X509FilesOption, new_x509_files, with_storage

__version__ = "0.1.0"

CLIENT = Role.CLIENT
SERVER = Role.SERVER

__all__ = [
    # Construction
    "X509Files",
    "X509FilesOption",
    "new_x509_files",
    "with_storage",
    # Roles and policy
    "Role",
    "CLIENT",
    "SERVER",
    "ClientAuth",
    "TlsPolicy",
    "build_policy",
    # Credentials
    "TransportCredentials",
    "ProtocolInfo",
    # PEM
    "KeyPair",
    "TrustPool",
    "load_key_pair",
    "load_trust_pool",
    # Storage
    "Storage",
    "OsStorage",
    "MemoryStorage",
    # Errors
    "MTLSError",
    "Artifact",
    "ParseFailure",
    "CredentialIOError",
    "CredentialParseError",
    "CredentialConfigError",
    "is_retryable_error",
    # Config and reload
    "MTLSConfig",
    "load_config",
    "CredentialReloader",
]
