"""Authentication contexts for privileged filesystem construction.

A context decides how the native handle is built: SIMPLE contexts run the
construction directly, IMPERSONATED contexts first assume an identity
(a Kerberos login from a keytab) and then run it.

Object storage speaks no strong identity protocol on the wire, so S3
vaults always get a SIMPLE context.
"""

from __future__ import annotations

import hashlib
import logging
import subprocess
import tempfile
import threading
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from pathlib import Path

from storage_vault.errors import VaultConfigError
from storage_vault.properties import HdfsProperties
from storage_vault.types import AuthenticationMode, VaultType

logger = logging.getLogger(__name__)

KerberosLogin = Callable[[str, str, Path], None]


def kinit_login(principal: str, keytab: str, ticket_cache: Path) -> None:
    """Obtain a Kerberos ticket for ``principal`` into ``ticket_cache``.

    Raises:
        subprocess.CalledProcessError: If kinit rejects the keytab.
        FileNotFoundError: If kinit is not installed.

    """
    subprocess.run(  # noqa: S603
        ["kinit", "-kt", keytab, "-c", str(ticket_cache), principal],  # noqa: S607
        check=True,
        capture_output=True,
        text=True,
    )


def default_ticket_cache(principal: str) -> Path:
    """Return the per-principal ticket cache location."""
    digest = hashlib.sha256(principal.encode("utf-8")).hexdigest()[:16]
    return Path(tempfile.gettempdir()) / f"storage_vault_krb5cc_{digest}"


@dataclass
class AuthenticationContext:
    """Credential delegation strategy used to run construction calls.

    Attributes:
        mode: SIMPLE or IMPERSONATED.
        delegate: Identity assumption run before each action, or None.
        principal: Identity assumed by an impersonating context.
        ticket_cache: Credential cache the native client should read.

    """

    mode: AuthenticationMode
    delegate: Callable[[], None] | None = None
    principal: str | None = None
    ticket_cache: Path | None = None

    def run_as[T](self, action: Callable[[], T]) -> T:
        """Run ``action`` under this context's identity."""
        if self.delegate is not None:
            logger.debug("Assuming identity %s before construction", self.principal)
            self.delegate()
        return action()


def simple_context() -> AuthenticationContext:
    """Create a context that runs actions as the current process identity."""
    return AuthenticationContext(mode=AuthenticationMode.SIMPLE)


@dataclass
class _OnceLogin:
    """Runs a Kerberos login once and remembers success."""

    principal: str
    keytab: str
    ticket_cache: Path
    login: KerberosLogin
    _done: bool = False
    _lock: threading.Lock = field(default_factory=threading.Lock)

    def __call__(self) -> None:
        if self._done:
            return
        with self._lock:
            if self._done:
                return
            logger.info("Kerberos login for principal %s", self.principal)
            self.login(self.principal, self.keytab, self.ticket_cache)
            self._done = True


def impersonated_context(
    principal: str,
    keytab: str,
    *,
    login: KerberosLogin = kinit_login,
    ticket_cache: Path | None = None,
) -> AuthenticationContext:
    """Create a context that logs in as ``principal`` before each action.

    The login itself runs once per context; a failed login is retried on
    the next action.
    """
    cache = ticket_cache or default_ticket_cache(principal)
    return AuthenticationContext(
        mode=AuthenticationMode.IMPERSONATED,
        delegate=_OnceLogin(principal, keytab, cache, login),
        principal=principal,
        ticket_cache=cache,
    )


def context_for(
    vault_type: VaultType,
    properties: Mapping[str, str],
    *,
    login: KerberosLogin = kinit_login,
) -> AuthenticationContext:
    """Select the authentication context appropriate to a backend.

    Args:
        vault_type: Backend of the vault.
        properties: Validated vault properties.
        login: Kerberos login used by impersonating contexts.

    Returns:
        SIMPLE for S3 and for HDFS without Kerberos, IMPERSONATED otherwise.

    Raises:
        VaultConfigError: If Kerberos is requested without principal or keytab.

    """
    if vault_type is VaultType.S3:
        return simple_context()

    auth = properties.get(HdfsProperties.AUTHENTICATION, "simple").strip().lower()
    if auth != "kerberos":
        return simple_context()

    principal = properties.get(HdfsProperties.KERBEROS_PRINCIPAL, "").strip()
    keytab = properties.get(HdfsProperties.KERBEROS_KEYTAB, "").strip()
    if not principal or not keytab:
        raise VaultConfigError(
            f"{HdfsProperties.KERBEROS_PRINCIPAL} and "
            f"{HdfsProperties.KERBEROS_KEYTAB} are required for kerberos authentication"
        )
    return impersonated_context(principal, keytab, login=login)
