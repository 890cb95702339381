"""
Role-specific TLS policy for mutual authentication.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from .errors import CredentialConfigError
from .pem import KeyPair, TrustPool

TLS_MIN_VERSION = "1.2"


class Role(Enum):
    """Which end of the connection the credentials are for."""

    CLIENT = "client"
    SERVER = "server"

    @classmethod
    def parse(cls, value: Any) -> "Role":
        """Convert a configuration value ("client"/"server") to a Role.

        Raises:
            CredentialConfigError: For anything else
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        raise CredentialConfigError(f"invalid role: {value!r}")


class ClientAuth(Enum):
    """Server-side policy for client certificates."""

    NO_CLIENT_CERT = "no_client_cert"
    REQUIRE_AND_VERIFY_CLIENT_CERT = "require_and_verify_client_cert"


@dataclass(frozen=True)
class TlsPolicy:
    """Identity, trust and verification requirements for one role.

    Attributes:
        role: The role this policy was built for
        key_pair: Local identity presented to the peer
        root_cas: Authorities trusted for the server (client role)
        client_cas: Authorities trusted for client certificates (server role)
        client_auth: Whether peers must present a verified certificate
        min_version: Lowest TLS version negotiated
    """
    role: Role
    key_pair: KeyPair
    root_cas: Optional[TrustPool] = None
    client_cas: Optional[TrustPool] = None
    client_auth: ClientAuth = ClientAuth.NO_CLIENT_CERT
    min_version: str = TLS_MIN_VERSION

    @property
    def trust_pool(self) -> TrustPool:
        """The pool used to verify the remote peer, whichever role."""
        return self.client_cas if self.role is Role.SERVER else self.root_cas

    @property
    def requires_client_cert(self) -> bool:
        return self.client_auth is ClientAuth.REQUIRE_AND_VERIFY_CLIENT_CERT


def validate_role(role: Any) -> Role:
    """Reject anything that is not a Role member.

    Raises:
        CredentialConfigError: If role is not Role.CLIENT or Role.SERVER
    """
    if not isinstance(role, Role):
        raise CredentialConfigError(f"invalid role: {role!r}")
    return role


def build_policy(role: Role, key_pair: KeyPair, pool: TrustPool) -> TlsPolicy:
    """Assemble the TLS policy for a role.

    A client presents its key pair and trusts pool as the roots for the
    server it dials. A server presents its key pair and requires every
    client to present a certificate that verifies against pool.

    Raises:
        CredentialConfigError: If role is not a Role member
    """
    role = validate_role(role)

    if role is Role.CLIENT:
        return TlsPolicy(
            role=role,
            key_pair=key_pair,
            root_cas=pool,
        )

    return TlsPolicy(
        role=role,
        key_pair=key_pair,
        client_cas=pool,
        client_auth=ClientAuth.REQUIRE_AND_VERIFY_CLIENT_CERT,
    )
