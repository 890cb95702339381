"""
gRPC transport credentials built from a TLS policy.
"""

from dataclasses import dataclass
from typing import Optional, Sequence, Union

import grpc

from .errors import CredentialConfigError
from .policy import TLS_MIN_VERSION, Role, TlsPolicy

SECURITY_PROTOCOL = "tls"
TARGET_NAME_OVERRIDE_OPTION = "grpc.ssl_target_name_override"


@dataclass(frozen=True)
class ProtocolInfo:
    """Security protocol metadata reported by transport credentials."""
    protocol_version: str = ""
    security_protocol: str = SECURITY_PROTOCOL
    security_version: str = TLS_MIN_VERSION
    server_name: str = ""


class TransportCredentials:
    """mTLS credentials ready to attach to a gRPC channel or server.

    The underlying grpc credential object is created on demand, so a
    TransportCredentials instance holds only the parsed policy.
    """

    def __init__(self, policy: TlsPolicy, server_name: str = ""):
        self._policy = policy
        self._server_name = server_name

    @property
    def policy(self) -> TlsPolicy:
        return self._policy

    @property
    def role(self) -> Role:
        return self._policy.role

    def info(self) -> ProtocolInfo:
        """Report the security protocol these credentials negotiate."""
        return ProtocolInfo(
            security_protocol=SECURITY_PROTOCOL,
            security_version=self._policy.min_version,
            server_name=self._server_name,
        )

    def clone(self) -> "TransportCredentials":
        return TransportCredentials(self._policy, server_name=self._server_name)

    def override_server_name(self, server_name: str) -> None:
        """Verify the server certificate against server_name instead of the dial target."""
        self._server_name = server_name

    @property
    def grpc_credentials(self) -> Union[grpc.ChannelCredentials, grpc.ServerCredentials]:
        """The grpc credential object for this role."""
        key_pair = self._policy.key_pair
        private_key = key_pair.private_key_pem()
        certificate_chain = key_pair.certificate_chain_pem()

        if self.role is Role.CLIENT:
            return grpc.ssl_channel_credentials(
                root_certificates=self._policy.root_cas.to_pem(),
                private_key=private_key,
                certificate_chain=certificate_chain,
            )

        return grpc.ssl_server_credentials(
            [(private_key, certificate_chain)],
            root_certificates=self._policy.client_cas.to_pem(),
            require_client_auth=self._policy.requires_client_cert,
        )

    def channel_options(self) -> list[tuple[str, str]]:
        """Channel options carrying the server name override, if any."""
        if self._server_name:
            return [(TARGET_NAME_OVERRIDE_OPTION, self._server_name)]
        return []

    def secure_channel(
        self,
        target: str,
        options: Optional[Sequence[tuple[str, object]]] = None,
    ) -> grpc.Channel:
        """Dial target with these credentials.

        Raises:
            CredentialConfigError: If these are server credentials
        """
        self._require_role(Role.CLIENT, "secure_channel")
        return grpc.secure_channel(
            target,
            self.grpc_credentials,
            options=list(options or []) + self.channel_options(),
        )

    def add_secure_port(self, server: grpc.Server, address: str) -> int:
        """Listen on address with these credentials.

        Returns:
            The port number bound

        Raises:
            CredentialConfigError: If these are client credentials
        """
        self._require_role(Role.SERVER, "add_secure_port")
        return server.add_secure_port(address, self.grpc_credentials)

    def _require_role(self, role: Role, operation: str) -> None:
        if self.role is not role:
            raise CredentialConfigError(
                f"{operation} requires {role.value} credentials, got {self.role.value}"
            )

    def __repr__(self) -> str:
        return (
            f"TransportCredentials(role={self.role.value}, "
            f"leaf={self._policy.key_pair.fingerprint[:16]}, "
            f"server_name={self._server_name!r})"
        )
