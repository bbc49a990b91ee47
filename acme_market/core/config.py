"""Environment-driven settings shared by the seller, buyer and dashboard processes."""

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

_BUNDLED_STATIC_DIR = Path(__file__).resolve().parent.parent / "services" / "dashboard" / "static"


class Settings(BaseSettings):
    """Application settings loaded from environment variables or a local .env file."""

    APP_NAME: str = "Acme Market"
    ENV: str = "dev"
    LOG_LEVEL: str = "INFO"
    VERSION: str = "0.1.0"
    REDIS_ADDRESS: str = "localhost:6379"
    REDIS_DB: int = 0
    REDIS_PASSWORD: str = ""
    BINDING: str = "0.0.0.0:5000"
    QUEUE_KEY: str = "acme:queue"
    HISTOGRAM_KEY: str = "acme:histogram"
    HISTOGRAM_MAX_LEN: int = 101
    TICK_INTERVAL_S: float = 1.0
    SELLER_MAX_BATCH: int = 9
    SERIES_SEED_BASE: float = 200.0
    SERIES_MAX_STEP: int = 4
    SHUTDOWN_GRACE_S: float = 30.0
    HTTP_IDLE_TIMEOUT_S: int = 15
    STATIC_DIR: str = ""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    def redis_endpoint(self) -> tuple[str, int]:
        """Return (host, port) parsed from REDIS_ADDRESS."""

        return self._split_address(self.REDIS_ADDRESS, default_host="localhost")

    def binding_endpoint(self) -> tuple[str, int]:
        """Return (host, port) the dashboard listens on."""

        return self._split_address(self.BINDING, default_host="0.0.0.0")

    def histogram_trim_stop(self) -> int:
        """Return the inclusive LTRIM stop index that bounds the histogram buffer."""

        return max(1, self.HISTOGRAM_MAX_LEN) - 1

    def static_dir(self) -> Path:
        """Return the directory holding the dashboard front-end."""

        configured = self.STATIC_DIR.strip()
        if configured:
            return Path(configured)
        return _BUNDLED_STATIC_DIR

    @staticmethod
    def _split_address(value: str, default_host: str) -> tuple[str, int]:
        """Split a host:port pair, falling back to default_host for ':port'."""

        host, sep, port_raw = value.strip().rpartition(":")
        if not sep:
            raise ValueError(f"address {value!r} is not in host:port form")

        try:
            port = int(port_raw)
        except ValueError:
            raise ValueError(f"address {value!r} has a non-numeric port") from None
        if not 0 < port < 65536:
            raise ValueError(f"address {value!r} has an out of range port")

        host = host.strip("[]") or default_host
        return host, port


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings to avoid repeated environment parsing."""

    return Settings()
