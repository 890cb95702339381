"""
mTLS transport credentials from PEM files.

Holds the paths to a leaf certificate, its private key and a CA bundle,
and turns them into client or server transport credentials on demand.
"""

from dataclasses import dataclass, field, replace
from typing import Callable, Optional

from .credentials import TransportCredentials
from .errors import Artifact, CredentialIOError
from .pem import load_key_pair, load_trust_pool
from .policy import Role, TlsPolicy, build_policy, validate_role
from .storage import OsStorage, Storage


@dataclass(frozen=True)
class X509Files:
    """Paths to the certificate, key and certificate authority files.

    Attributes:
        certificate_file: PEM certificate chain, leaf first
        key_file: PEM private key for the leaf
        certificate_authority_file: PEM bundle of trusted CAs
        storage: Backend the paths are read from
    """
    certificate_file: str
    key_file: str
    certificate_authority_file: str
    storage: Storage = field(default_factory=OsStorage)

    def load_bytes(self, path: str, artifact: Optional[Artifact] = None) -> bytes:
        """Read the full content of path from the storage backend.

        Raises:
            CredentialIOError: If the path cannot be opened or read
        """
        try:
            stream = self.storage.open(path)
        except OSError as e:
            raise CredentialIOError(path, e, artifact=artifact, action="open") from e

        try:
            return self.storage.read_stream(stream)
        except OSError as e:
            raise CredentialIOError(path, e, artifact=artifact) from e

    def build_policy(self, role: Role) -> TlsPolicy:
        """Load and validate the three files and assemble the TLS policy.

        Files are read in order (certificate, key, CA); the first read
        failure stops the build before the remaining files are touched.

        Raises:
            CredentialConfigError: If role is invalid (no file is read)
            CredentialIOError: If a file cannot be read
            CredentialParseError: If the key pair or CA bundle is invalid
        """
        role = validate_role(role)

        certificate_data = self.load_bytes(self.certificate_file, Artifact.CERTIFICATE)
        key_data = self.load_bytes(self.key_file, Artifact.KEY)
        certificate_authority_data = self.load_bytes(
            self.certificate_authority_file, Artifact.CERTIFICATE_AUTHORITY
        )

        key_pair = load_key_pair(certificate_data, key_data)
        pool = load_trust_pool(certificate_authority_data)

        return build_policy(role, key_pair, pool)

    def generate_transport_credentials(self, role: Role) -> TransportCredentials:
        """Build fresh transport credentials for role.

        Nothing is cached; calling again picks up any changed files.
        """
        return TransportCredentials(self.build_policy(role))


X509FilesOption = Callable[[X509Files], X509Files]


def with_storage(storage: Storage) -> X509FilesOption:
    """Option to read the files from a different storage backend."""
    def option(files: X509Files) -> X509Files:
        return replace(files, storage=storage)
    return option


def new_x509_files(
    certificate_file: str,
    key_file: str,
    certificate_authority_file: str,
    *options: X509FilesOption,
) -> X509Files:
    """Create an X509Files for the given paths, applying options in order."""
    files = X509Files(
        certificate_file=certificate_file,
        key_file=key_file,
        certificate_authority_file=certificate_authority_file,
    )
    for option in options:
        files = option(files)
    return files
