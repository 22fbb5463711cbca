"""SSH utilities for remote-shell."""

from .credentials import Credential, Endpoint, Password, PrivateKey, normalize_key
from .execution import run_command
from .session import InsecureHostKeyPolicy, load_private_key, open_session, open_with_retry

__all__ = [
    "Credential",
    "Endpoint",
    "Password",
    "PrivateKey",
    "normalize_key",
    "run_command",
    "InsecureHostKeyPolicy",
    "load_private_key",
    "open_session",
    "open_with_retry",
]
