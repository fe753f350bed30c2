# =============================================================================
# AI Perfume Queue Client - Centralized Configuration
# =============================================================================
# Provides a single Config dataclass containing all tunable parameters for
# the queue client: service host, endpoint paths, pipeline step identifiers
# and timeouts. Parameters are overridable via environment variables with
# the PERFUME_ prefix (e.g., PERFUME_IDLE_TIMEOUT_SECONDS=30).
# =============================================================================

import os
from dataclasses import dataclass
from typing import Optional


def _parse_bool(value: str) -> bool:
    """Interpret common truthy strings ("1", "true", "yes", "on")."""
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class Config:
    """
    Centralized configuration for the AI Perfume queue client.

    All fields can be overridden via environment variables prefixed with PERFUME_.
    """

    # -- Service --
    base_url: str = "https://api.fashtechai.com"
    upload_path: str = "/upload"
    join_path: str = "/queue/join"
    data_path: str = "/queue/data"
    file_route: str = "/file="

    # -- Pipeline step (fixed by the server's app definition) --
    fn_index: int = 0
    trigger_id: int = 10

    # -- Session --
    session_token_length: int = 11
    default_mode: str = "recommendation"

    # -- Timeouts --
    request_timeout_seconds: float = 60.0
    idle_timeout_seconds: float = 60.0
    verify_tls: bool = True

    def __post_init__(self):
        """Apply environment variable overrides, then validate and normalize."""
        self._apply_env_overrides()
        self.base_url = self.base_url.rstrip("/")
        # session tokens are UUID4 hex prefixes
        if not 1 <= self.session_token_length <= 32:
            raise ValueError(
                f"session_token_length must be between 1 and 32, got {self.session_token_length}"
            )

    def _apply_env_overrides(self):
        """
        Override config fields from environment variables.

        Looks for PERFUME_<FIELD_NAME_UPPERCASE> environment variables and
        applies them with appropriate type conversion.
        """
        field_types = {
            "base_url": str,
            "upload_path": str,
            "join_path": str,
            "data_path": str,
            "file_route": str,
            "fn_index": int,
            "trigger_id": int,
            "session_token_length": int,
            "default_mode": str,
            "request_timeout_seconds": float,
            "idle_timeout_seconds": float,
            "verify_tls": _parse_bool,
        }
        for field_name, field_type in field_types.items():
            env_key = f"PERFUME_{field_name.upper()}"
            env_value = os.environ.get(env_key)
            if env_value is not None:
                setattr(self, field_name, field_type(env_value))

    # -----------------------------------------------------------------
    # Derived endpoint URLs
    # -----------------------------------------------------------------

    @property
    def upload_url(self) -> str:
        return f"{self.base_url}{self.upload_path}"

    @property
    def join_url(self) -> str:
        return f"{self.base_url}{self.join_path}"

    @property
    def data_url(self) -> str:
        return f"{self.base_url}{self.data_path}"

    def file_url(self, server_path: str) -> str:
        """Public retrieval URL for a file the server stored at ``server_path``."""
        return f"{self.base_url}{self.file_route}{server_path}"


# ---------------------------------------------------------------------------
# Singleton accessor
# ---------------------------------------------------------------------------
_config_instance: Optional[Config] = None


def get_config() -> Config:
    """
    Return the singleton Config instance, creating it on first call.

    Returns:
        Config: The global configuration object.
    """
    global _config_instance
    if _config_instance is None:
        _config_instance = Config()
    return _config_instance
