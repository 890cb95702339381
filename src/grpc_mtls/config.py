"""
Configuration for mTLS credential loading.

Settings come from a YAML file (pointed to by MTLS_CONFIG_PATH) or from
individual environment variables.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Union

import yaml

from .errors import CredentialConfigError
from .policy import Role
from .x509_files import X509Files, X509FilesOption, new_x509_files

ENV_CONFIG_PATH = "MTLS_CONFIG_PATH"
ENV_CERT_FILE = "MTLS_CERT_FILE"
ENV_KEY_FILE = "MTLS_KEY_FILE"
ENV_CA_FILE = "MTLS_CA_FILE"
ENV_ROLE = "MTLS_ROLE"
ENV_SERVER_NAME_OVERRIDE = "MTLS_SERVER_NAME_OVERRIDE"
ENV_RELOAD_INTERVAL = "MTLS_RELOAD_INTERVAL"


def _parse_interval(value: Any) -> float:
    if value in (None, ""):
        return 0.0
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise CredentialConfigError(f"invalid reload interval: {value!r}") from e


@dataclass
class MTLSConfig:
    """Where to find the PEM files and how to use them.

    Attributes:
        certificate_file: Path to the PEM certificate chain
        key_file: Path to the PEM private key
        certificate_authority_file: Path to the PEM CA bundle
        role: Client or server credentials
        server_name_override: Name to verify the server certificate against
        reload_interval: Seconds between reloads (0 disables)
    """
    certificate_file: str
    key_file: str
    certificate_authority_file: str
    role: Role = Role.CLIENT
    server_name_override: Optional[str] = None
    reload_interval: float = 0.0

    @classmethod
    def from_config_file(cls, config_path: Union[str, Path]) -> "MTLSConfig":
        """Load configuration from a YAML file.

        Expected keys: certificate_file, key_file, certificate_authority_file,
        and optionally role, server_name_override, reload_interval.

        Raises:
            FileNotFoundError: If the file does not exist
            CredentialConfigError: If the file is not a mapping or a value is invalid
        """
        path = Path(config_path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")

        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}

        if not isinstance(data, dict):
            raise CredentialConfigError(f"Config file must contain a mapping: {config_path}")

        return cls(
            certificate_file=data.get("certificate_file", ""),
            key_file=data.get("key_file", ""),
            certificate_authority_file=data.get("certificate_authority_file", ""),
            role=Role.parse(data.get("role", Role.CLIENT.value)),
            server_name_override=data.get("server_name_override") or None,
            reload_interval=_parse_interval(data.get("reload_interval")),
        )

    @classmethod
    def from_env(cls) -> "MTLSConfig":
        """Load configuration from environment variables."""
        return cls(
            certificate_file=os.environ.get(ENV_CERT_FILE, ""),
            key_file=os.environ.get(ENV_KEY_FILE, ""),
            certificate_authority_file=os.environ.get(ENV_CA_FILE, ""),
            role=Role.parse(os.environ.get(ENV_ROLE, Role.CLIENT.value)),
            server_name_override=os.environ.get(ENV_SERVER_NAME_OVERRIDE) or None,
            reload_interval=_parse_interval(os.environ.get(ENV_RELOAD_INTERVAL)),
        )

    def validate(self) -> None:
        """Check that the configuration is usable.

        Raises:
            CredentialConfigError: If a path is missing or a value is out of range
        """
        if not self.certificate_file:
            raise CredentialConfigError("Certificate file is required")
        if not self.key_file:
            raise CredentialConfigError("Key file is required")
        if not self.certificate_authority_file:
            raise CredentialConfigError("Certificate authority file is required")
        if not isinstance(self.role, Role):
            raise CredentialConfigError(f"invalid role: {self.role!r}")
        if self.reload_interval < 0:
            raise CredentialConfigError("Reload interval cannot be negative")

    def to_x509_files(self, *options: X509FilesOption) -> X509Files:
        return new_x509_files(
            self.certificate_file,
            self.key_file,
            self.certificate_authority_file,
            *options,
        )


def load_config() -> MTLSConfig:
    """Load configuration from the best available source.

    Priority:
    1. YAML file at MTLS_CONFIG_PATH
    2. MTLS_* environment variables

    Raises:
        CredentialConfigError: If no configuration is found or it is invalid
    """
    config_path = os.environ.get(ENV_CONFIG_PATH)
    if config_path:
        config = MTLSConfig.from_config_file(config_path)
    elif os.environ.get(ENV_CERT_FILE):
        config = MTLSConfig.from_env()
    else:
        raise CredentialConfigError(
            "No mTLS configuration found. Set MTLS_CONFIG_PATH to a YAML file "
            "or set MTLS_CERT_FILE, MTLS_KEY_FILE and MTLS_CA_FILE."
        )

    config.validate()
    return config
