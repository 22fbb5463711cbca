"""Configuration loading utilities for remote-shell."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv

_DEFAULT_CONFIG_PATH = Path("config/remote_shell.json")

ENV_PREFIX = "REMOTE_SHELL_"

# Transport keep-alive defaults per auth method, in seconds
KEY_AUTH_KEEPALIVE = 1
PASSWORD_AUTH_KEEPALIVE = 10


@dataclass
class RetryPolicy:
    """Bounded retry of session establishment."""

    attempts: int = 7
    delay: float = 60.0  # base pause in seconds, randomized up to twice as long

    def __post_init__(self) -> None:
        if self.attempts < 1:
            raise ValueError("Retry attempts must be at least 1")
        if self.delay < 0:
            raise ValueError("Retry delay cannot be negative")


@dataclass
class ShellSettings:
    """Timeouts and liveness parameters for one SSH shell."""

    connect_timeout: float = 10.0
    channel_timeout: float = 10.0
    keepalive_interval: Optional[int] = None  # None picks the per-auth default
    poll_interval: float = 1.0
    retry: RetryPolicy = field(default_factory=RetryPolicy)

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "ShellSettings":
        payload = {k: v for k, v in (payload or {}).items() if not k.startswith("_")}
        retry_payload = payload.pop("retry", {}) or {}
        retry_payload = {k: v for k, v in retry_payload.items() if not k.startswith("_")}
        return cls(
            **{**_shell_defaults(), **payload},
            retry=RetryPolicy(**{**RetryPolicy().__dict__, **retry_payload}),
        )


@dataclass
class TargetConfig:
    """Default connection target used by the CLI."""

    host: Optional[str] = None
    port: int = 22
    user: Optional[str] = None
    key_path: Optional[str] = None
    password: Optional[str] = None


@dataclass
class AppConfig:
    """Top-level configuration."""

    shell: ShellSettings = field(default_factory=ShellSettings)
    target: TargetConfig = field(default_factory=TargetConfig)

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "AppConfig":
        shell_payload = payload.get("shell", {}) or {}
        target_payload = payload.get("target", {}) or {}
        target_payload = {k: v for k, v in target_payload.items() if not k.startswith("_")}
        return cls(
            shell=ShellSettings.from_dict(shell_payload),
            target=TargetConfig(**{**TargetConfig().__dict__, **target_payload}),
        )


def _shell_defaults() -> Dict[str, Any]:
    return {k: v for k, v in ShellSettings().__dict__.items() if k != "retry"}


def load_config(path: Optional[str] = None) -> AppConfig:
    """Load configuration from `path` or the default location.

    A missing default file is fine and yields the built-in defaults; an
    explicit `path` that does not exist is an error.

    Environment variables (higher priority than config file), also read from
    a ``.env`` file when present:
    - REMOTE_SHELL_CONNECT_TIMEOUT: SSH handshake timeout in seconds
    - REMOTE_SHELL_CHANNEL_TIMEOUT: Exec channel open timeout in seconds
    - REMOTE_SHELL_KEEPALIVE_INTERVAL: Transport keep-alive interval
    - REMOTE_SHELL_POLL_INTERVAL: Seconds between liveness polls
    - REMOTE_SHELL_RETRY_ATTEMPTS: Session open attempts
    - REMOTE_SHELL_RETRY_DELAY: Base pause between attempts in seconds
    - REMOTE_SHELL_SSH_HOST / _SSH_PORT / _SSH_USER: Default target
    - REMOTE_SHELL_SSH_KEY_PATH: Path to SSH private key
    - REMOTE_SHELL_SSH_PASSWORD: SSH password
    """
    load_dotenv()

    if path:
        candidate = Path(path)
        if not candidate.is_file():
            raise FileNotFoundError(f"Could not find configuration file: {candidate}")
    else:
        candidate = _DEFAULT_CONFIG_PATH

    if candidate.is_file():
        with candidate.open("r", encoding="utf-8") as handle:
            config = AppConfig.from_dict(json.load(handle))
    else:
        config = AppConfig()

    _apply_env(config)
    return config


def _apply_env(config: AppConfig) -> None:
    shell = config.shell

    env_value = _env("CONNECT_TIMEOUT")
    if env_value:
        shell.connect_timeout = float(env_value)

    env_value = _env("CHANNEL_TIMEOUT")
    if env_value:
        shell.channel_timeout = float(env_value)

    env_value = _env("KEEPALIVE_INTERVAL")
    if env_value:
        shell.keepalive_interval = int(env_value)

    env_value = _env("POLL_INTERVAL")
    if env_value:
        shell.poll_interval = float(env_value)

    env_value = _env("RETRY_ATTEMPTS")
    if env_value:
        shell.retry = RetryPolicy(attempts=int(env_value), delay=shell.retry.delay)

    env_value = _env("RETRY_DELAY")
    if env_value:
        shell.retry = RetryPolicy(attempts=shell.retry.attempts, delay=float(env_value))

    target = config.target

    env_value = _env("SSH_HOST")
    if env_value:
        target.host = env_value

    env_value = _env("SSH_PORT")
    if env_value:
        target.port = int(env_value)

    env_value = _env("SSH_USER")
    if env_value:
        target.user = env_value

    env_value = _env("SSH_KEY_PATH")
    if env_value:
        target.key_path = env_value

    env_value = _env("SSH_PASSWORD")
    if env_value:
        target.password = env_value


def _env(name: str) -> Optional[str]:
    return os.getenv(ENV_PREFIX + name)
