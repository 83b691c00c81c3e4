"""Client runtime configuration.

Architectural role:
    Centralizes credentials, endpoint selection, transport and polling
    defaults consumed by `image.service`, `api.http_api` and `api.cli`.

Relevant environment variables:
    - `JIMENG_ACCESS_KEY` / `JIMENG_SECRET_KEY`
    - `JIMENG_ACCESS_KEY_FILE` / `JIMENG_SECRET_KEY_FILE` (fallback key files)
    - `JIMENG_ENDPOINT`, `JIMENG_REGION`, `JIMENG_SERVICE`
    - `JIMENG_TIMEOUT_SECONDS`
    - `JIMENG_POLL_INTERVAL`, `JIMENG_MAX_WAIT_TIME`
    - `JIMENG_CONCURRENCY_POLICY` (`reject` | `queue`)

Determinism:
    Values are resolved when a `JimengConfig` is instantiated, so tests can
    construct explicit configurations regardless of the process environment.

Failure behavior:
    - Missing credentials are represented as empty strings here; the signer
      rejects them at construction time.
    - Non-numeric or negative durations and unknown concurrency policies
      raise `ConfigurationError` when the config is built.
"""

import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

from jimeng.core.errors import ConfigurationError
from jimeng.core.gate import POLICIES

load_dotenv()

DEFAULT_ENDPOINT = "https://visual.volcengineapi.com"
DEFAULT_REGION = "cn-north-1"
DEFAULT_SERVICE = "cv"
DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_POLL_INTERVAL = 2.0
DEFAULT_MAX_WAIT_TIME = 300.0
DEFAULT_CONCURRENCY_POLICY = "reject"

# (field, whether 0 is accepted)
_DURATIONS = (
    ("timeout_seconds", False),
    ("poll_interval", True),
    ("max_wait_time", False),
)


def read_key_file(path):
    """Return the stripped contents of a key file.

    Args:
        path: Value of a `*_FILE` variable, or `None`.

    Returns:
        Key string, or `None` when no path is set or the file is missing.
    """
    if not path:
        return None
    if not os.path.isfile(path):
        return None
    with open(path, "r") as f:
        return f.read().strip()


def _credential(env_name: str) -> str:
    # Inline value first, then the file named by `<ENV_NAME>_FILE`.
    value = os.getenv(env_name, "").strip()
    if value:
        return value
    return read_key_file(os.getenv(f"{env_name}_FILE")) or ""


def _seconds(env_name: str, default: float):
    # Raw text; `__post_init__` parses and validates it.
    return os.getenv(env_name, str(default)).strip()


@dataclass(frozen=True)
class JimengConfig:
    """Credentials and runtime settings for one client instance."""

    access_key: str = field(default_factory=lambda: _credential("JIMENG_ACCESS_KEY"))
    secret_key: str = field(default_factory=lambda: _credential("JIMENG_SECRET_KEY"))
    endpoint: str = field(
        default_factory=lambda: os.getenv("JIMENG_ENDPOINT", DEFAULT_ENDPOINT).strip()
    )
    region: str = field(
        default_factory=lambda: os.getenv("JIMENG_REGION", DEFAULT_REGION).strip()
    )
    service: str = field(
        default_factory=lambda: os.getenv("JIMENG_SERVICE", DEFAULT_SERVICE).strip()
    )
    timeout_seconds: float = field(
        default_factory=lambda: _seconds("JIMENG_TIMEOUT_SECONDS", DEFAULT_TIMEOUT_SECONDS)
    )
    poll_interval: float = field(
        default_factory=lambda: _seconds("JIMENG_POLL_INTERVAL", DEFAULT_POLL_INTERVAL)
    )
    max_wait_time: float = field(
        default_factory=lambda: _seconds("JIMENG_MAX_WAIT_TIME", DEFAULT_MAX_WAIT_TIME)
    )
    concurrency_policy: str = field(
        default_factory=lambda: os.getenv(
            "JIMENG_CONCURRENCY_POLICY", DEFAULT_CONCURRENCY_POLICY
        ).strip().lower()
    )

    def __post_init__(self) -> None:
        """Coerce durations to floats and reject invalid settings.

        Raises:
            ConfigurationError: Non-numeric or out-of-range duration, or an
                unknown concurrency policy.
        """
        for name, zero_allowed in _DURATIONS:
            raw = getattr(self, name)
            try:
                value = float(raw)
            except (TypeError, ValueError):
                raise ConfigurationError(f"{name} must be a number of seconds, got {raw!r}") from None
            if value < 0 or (value == 0 and not zero_allowed):
                raise ConfigurationError(f"{name} is out of range: {value:g}")
            object.__setattr__(self, name, value)

        if self.concurrency_policy not in POLICIES:
            raise ConfigurationError(
                f"Unknown concurrency policy: {self.concurrency_policy!r} "
                f"(expected one of {POLICIES})"
            )

    def masked(self) -> dict:
        """Return a printable view with credentials truncated."""
        return {
            "access_key": _mask(self.access_key),
            "secret_key": _mask(self.secret_key),
            "endpoint": self.endpoint,
            "region": self.region,
            "service": self.service,
            "timeout_seconds": self.timeout_seconds,
            "poll_interval": self.poll_interval,
            "max_wait_time": self.max_wait_time,
            "concurrency_policy": self.concurrency_policy,
        }


def _mask(value: str) -> str:
    if not value:
        return ""
    return f"{value[:8]}..."
