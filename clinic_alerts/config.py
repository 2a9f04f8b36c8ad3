"""Client-side configuration resolved from the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Dict, Optional

APP_NAME = "ClinicAlerts"

DEFAULT_API_URL = "http://localhost:8000"
DEFAULT_TIMEOUT = 10.0


@dataclass(frozen=True)
class ClientSettings:
    """Resolved settings for talking to the alerts collaborator."""

    api_url: str = DEFAULT_API_URL
    timeout: float = DEFAULT_TIMEOUT
    api_key: Optional[str] = None
    auth_header: str = "Authorization"
    actor_name: str = "Current User"
    actor_role: str = "Provider"
    offline_seed: bool = False

    def headers(self) -> Dict[str, str]:
        """Return headers sent with every collaborator request."""

        headers: Dict[str, str] = {"Accept": "application/json"}
        if self.api_key:
            headers[self.auth_header] = self.api_key
        return headers


def _get_float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw in (None, ""):
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ValueError(f"Environment variable {name} must be a number; got {raw!r}") from exc


def _env_flag(name: str) -> bool:
    return os.getenv(name, "0").strip().lower() in {"1", "true", "yes", "on"}


@lru_cache(maxsize=1)
def get_client_settings() -> ClientSettings:
    """Return the active client settings derived from the environment."""

    return ClientSettings(
        api_url=os.getenv("CLINIC_ALERTS_API_URL", DEFAULT_API_URL),
        timeout=_get_float_env("CLINIC_ALERTS_API_TIMEOUT", DEFAULT_TIMEOUT),
        api_key=os.getenv("CLINIC_ALERTS_API_KEY") or None,
        auth_header=os.getenv("CLINIC_ALERTS_AUTH_HEADER", "Authorization"),
        actor_name=os.getenv("CLINIC_ALERTS_ACTOR_NAME", "Current User"),
        actor_role=os.getenv("CLINIC_ALERTS_ACTOR_ROLE", "Provider"),
        offline_seed=_env_flag("CLINIC_ALERTS_OFFLINE_SEED"),
    )


__all__ = ["APP_NAME", "ClientSettings", "get_client_settings"]
