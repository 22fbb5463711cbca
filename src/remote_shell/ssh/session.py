"""SSH session establishment built on Paramiko."""

from __future__ import annotations

import io
import logging
import random
import time
from typing import Callable, Optional, TypeVar

import paramiko

from ..config import KEY_AUTH_KEEPALIVE, PASSWORD_AUTH_KEEPALIVE, RetryPolicy, ShellSettings
from ..errors import SSHConnectionError
from .credentials import Credential, Endpoint, Password, PrivateKey

logger = logging.getLogger(__name__)

T = TypeVar("T")

# DSS keys only while the installed paramiko still ships them (dropped in 4.0)
_KEY_TYPES = (paramiko.RSAKey, paramiko.ECDSAKey, paramiko.Ed25519Key) + (
    (paramiko.DSSKey,) if hasattr(paramiko, "DSSKey") else ()
)


class InsecureHostKeyPolicy(paramiko.MissingHostKeyPolicy):
    """Accept every server host key without checking it.

    Shells are meant for unattended automation against hosts that are
    created and destroyed freely, so there is no known_hosts file to
    consult. The price is that a man-in-the-middle cannot be detected;
    callers that need that guarantee must not use this package.
    """

    def missing_host_key(self, client, hostname, key) -> None:
        logger.debug(
            "Accepting %s host key %s for %s without verification",
            key.get_name(),
            key.get_fingerprint().hex(),
            hostname,
        )


def load_private_key(key: PrivateKey) -> paramiko.PKey:
    """Parse normalized key material, decrypting it with the passphrase if any."""
    material = key.normalized
    failures = []
    for key_type in _KEY_TYPES:
        try:
            return key_type.from_private_key(io.StringIO(material), password=key.passphrase)
        except paramiko.PasswordRequiredException as exc:
            raise SSHConnectionError(
                "Private key is encrypted but no passphrase was given",
                retryable=False,
            ) from exc
        except (paramiko.SSHException, ValueError) as exc:
            failures.append(f"{key_type.__name__}: {exc}")
    raise SSHConnectionError(
        "Cannot load private key (" + "; ".join(failures) + ")",
        retryable=False,
    )


def open_session(
    endpoint: Endpoint,
    credential: Credential,
    settings: Optional[ShellSettings] = None,
    *,
    client_factory: Callable[[], paramiko.SSHClient] = paramiko.SSHClient,
) -> paramiko.SSHClient:
    """Open and authenticate one SSH session to ``endpoint``.

    Raises:
        SSHConnectionError: If the handshake or authentication fails
    """
    settings = settings or ShellSettings()
    connect_kwargs = {
        "hostname": endpoint.address,
        "port": endpoint.port,
        "username": endpoint.login,
        "timeout": settings.connect_timeout,
        "banner_timeout": settings.connect_timeout,
        "auth_timeout": settings.connect_timeout,
        "look_for_keys": False,
        "allow_agent": False,
    }
    if isinstance(credential, PrivateKey):
        pkey = load_private_key(credential)
        logger.debug(
            "Opening SSH session to %s (%d bytes in private key)...",
            endpoint,
            len(credential.normalized),
        )
        connect_kwargs["pkey"] = pkey
        del pkey
        keepalive = KEY_AUTH_KEEPALIVE
    elif isinstance(credential, Password):
        logger.debug("Opening SSH session to %s (auth with password)...", endpoint)
        connect_kwargs["password"] = credential.value
        keepalive = PASSWORD_AUTH_KEEPALIVE
    else:
        raise TypeError(f"Unsupported credential: {type(credential).__name__}")
    if settings.keepalive_interval is not None:
        keepalive = settings.keepalive_interval

    client = client_factory()
    client.set_missing_host_key_policy(InsecureHostKeyPolicy())
    try:
        client.connect(**connect_kwargs)
    except paramiko.AuthenticationException as exc:
        client.close()
        raise SSHConnectionError(
            f"Authentication failed for {endpoint}: {exc}",
            host=endpoint.address,
            retryable=False,
        ) from exc
    except (paramiko.SSHException, OSError, EOFError) as exc:
        client.close()
        raise SSHConnectionError(
            f"Cannot open SSH session to {endpoint}: {exc}",
            host=endpoint.address,
        ) from exc
    finally:
        connect_kwargs.pop("pkey", None)
        connect_kwargs.pop("password", None)

    transport = client.get_transport()
    if transport is None or not transport.is_active():
        client.close()
        raise SSHConnectionError(
            f"SSH session to {endpoint} closed right after connecting",
            host=endpoint.address,
        )
    transport.set_keepalive(keepalive)
    logger.debug("SSH session opened to %s", endpoint)
    return client


def open_with_retry(
    opener: Callable[[], T],
    policy: Optional[RetryPolicy] = None,
    *,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Call ``opener`` until it succeeds or the policy gives up.

    Only retryable :class:`SSHConnectionError` failures are retried; the pause
    between attempts is the policy delay plus up to the same again at random.
    """
    policy = policy or RetryPolicy()
    attempt = 1
    while True:
        try:
            return opener()
        except SSHConnectionError as exc:
            if not exc.retryable or attempt >= policy.attempts:
                raise
            pause = policy.delay + random.uniform(0, policy.delay)
            logger.warning(
                "Attempt %d/%d to open SSH session failed: %s; retrying in %.1fs",
                attempt,
                policy.attempts,
                exc,
                pause,
            )
            sleep(pause)
            attempt += 1
