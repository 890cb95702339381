"""
Periodic credential reload for long-running services.

Building credentials never caches, so reloading is just building again.
This module owns the parts a host service needs around that: retrying
transient read failures at startup, keeping the last good credentials when
a reload fails, and a background timer.
"""

import logging
import threading
from typing import Callable, Optional

from tenacity import Retrying, retry_if_exception, stop_after_attempt, wait_exponential

from .config import MTLSConfig
from .credentials import TransportCredentials
from .errors import CredentialConfigError, MTLSError, is_retryable_error
from .policy import Role, validate_role
from .x509_files import X509Files, X509FilesOption

logger = logging.getLogger(__name__)


class CredentialReloader:
    """Keeps a current set of transport credentials for one role."""

    DEFAULT_INTERVAL = 300.0  # 5 minutes

    def __init__(
        self,
        files: X509Files,
        role: Role,
        *,
        interval: float = DEFAULT_INTERVAL,
        server_name_override: Optional[str] = None,
        retry_attempts: int = 3,
        retry_wait_min: float = 1.0,
        retry_wait_max: float = 10.0,
        on_reload: Optional[Callable[[TransportCredentials], None]] = None,
    ):
        """Initialize the reloader.

        Args:
            files: Source of the PEM files
            role: Role to build credentials for
            interval: Seconds between background reloads (0 disables them)
            server_name_override: Server name applied to every build
            retry_attempts: Attempts per build for I/O failures
            retry_wait_min: Minimum backoff between attempts in seconds
            retry_wait_max: Maximum backoff between attempts in seconds
            on_reload: Called with the new credentials after each successful build
        """
        if interval < 0:
            raise CredentialConfigError(f"Reload interval cannot be negative: {interval}")

        self.files = files
        self.role = validate_role(role)
        self.interval = interval
        self.server_name_override = server_name_override
        self.on_reload = on_reload

        self._retry_attempts = retry_attempts
        self._retry_wait_min = retry_wait_min
        self._retry_wait_max = retry_wait_max

        self._lock = threading.Lock()
        self._current: Optional[TransportCredentials] = None
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @classmethod
    def from_config(cls, config: MTLSConfig, *options: X509FilesOption, **kwargs) -> "CredentialReloader":
        """Create a reloader from an MTLSConfig."""
        config.validate()
        kwargs.setdefault("server_name_override", config.server_name_override)
        kwargs.setdefault("interval", config.reload_interval)
        return cls(config.to_x509_files(*options), config.role, **kwargs)

    def _retrying(self) -> Retrying:
        return Retrying(
            retry=retry_if_exception(is_retryable_error),
            wait=wait_exponential(multiplier=1, min=self._retry_wait_min, max=self._retry_wait_max),
            stop=stop_after_attempt(self._retry_attempts),
            reraise=True,
        )

    def _build(self) -> TransportCredentials:
        credentials = self.files.generate_transport_credentials(self.role)
        if self.server_name_override:
            credentials.override_server_name(self.server_name_override)
        return credentials

    def _swap(self, credentials: TransportCredentials) -> None:
        with self._lock:
            self._current = credentials
        if self.on_reload is not None:
            self.on_reload(credentials)

    def load(self) -> TransportCredentials:
        """Build the initial credentials.

        I/O failures are retried with exponential backoff; anything else,
        and the last I/O failure, propagates so the host does not start
        without credentials.
        """
        credentials = self._retrying()(self._build)
        logger.info(
            "Loaded %s credentials from %s (leaf %s)",
            self.role.value,
            self.files.certificate_file,
            credentials.policy.key_pair.fingerprint,
        )
        self._swap(credentials)
        return credentials

    @property
    def current(self) -> TransportCredentials:
        """The last successfully built credentials.

        Raises:
            RuntimeError: If load() has not succeeded yet
        """
        with self._lock:
            if self._current is None:
                raise RuntimeError("Credentials not loaded. Call load() first.")
            return self._current

    def reload(self) -> bool:
        """Rebuild the credentials, keeping the previous set on failure.

        Returns:
            True if the credentials were replaced, False if the build failed
        """
        try:
            credentials = self._retrying()(self._build)
        except MTLSError as e:
            logger.error(
                "Failed to reload %s credentials, keeping previous: %s",
                self.role.value,
                e,
            )
            return False

        with self._lock:
            previous = self._current
        if previous is not None and (
            previous.policy.key_pair.fingerprint != credentials.policy.key_pair.fingerprint
        ):
            logger.info(
                "Rotated %s credentials: leaf %s -> %s",
                self.role.value,
                previous.policy.key_pair.fingerprint,
                credentials.policy.key_pair.fingerprint,
            )
        else:
            logger.debug("Reloaded %s credentials", self.role.value)

        self._swap(credentials)
        return True

    def start(self) -> None:
        """Start reloading in a background thread.

        Loads the initial credentials first if load() was not called. With
        an interval of 0 only the initial load happens and no thread is
        started.
        """
        if self._thread is not None and self._thread.is_alive() and not self._stop.is_set():
            return

        with self._lock:
            loaded = self._current is not None
        if not loaded:
            self.load()

        if self.interval == 0:
            logger.info("Background reload disabled for %s credentials", self.role.value)
            return

        # A thread left over from a timed-out stop() keeps its own, already set, event
        self._stop = threading.Event()
        self._thread = threading.Thread(
            target=self._run,
            args=(self._stop,),
            name=f"mtls-reloader-{self.role.value}",
            daemon=True,
        )
        self._thread.start()
        logger.info(
            "Started %s credential reloader (interval %.1fs)",
            self.role.value,
            self.interval,
        )

    def stop(self, timeout: Optional[float] = None) -> None:
        """Stop the background thread and wait for it to exit."""
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            if self._thread.is_alive():
                logger.warning(
                    "%s credential reloader did not stop within %ss",
                    self.role.value,
                    timeout,
                )
            else:
                self._thread = None

    def _run(self, stop: threading.Event) -> None:
        while not stop.wait(self.interval):
            try:
                self.reload()
            except Exception:
                logger.exception("Unexpected error reloading %s credentials", self.role.value)

    def __enter__(self) -> "CredentialReloader":
        self.start()
        return self

    def __exit__(self, *exc_info) -> None:
        self.stop()
