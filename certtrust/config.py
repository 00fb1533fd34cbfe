# certtrust/config.py
# Configuration settings for the trust subsystem and the operator API

import os
from pathlib import Path
from typing import Optional


def _optional_float(name: str) -> Optional[float]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return None
    return float(raw)


class Settings:
    """Application settings"""

    # Application
    APP_NAME: str = "Certificate Trust API"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = os.getenv("DEBUG", "OFF").upper() == "ON"

    # Trust store location
    DATA_DIR: Path = Path(os.getenv("CERTTRUST_DATA_DIR", str(Path.home() / ".certtrust")))
    TRUSTSTORE_FILENAME: str = os.getenv("TRUSTSTORE_FILENAME", "localTrustStore.zip")

    # Bundled default container copied into place on first run
    SEED_STORE: Path = Path(os.getenv(
        "CERTTRUST_SEED_STORE",
        str(Path(__file__).parent / "resources" / "default_truststore.zip")
    ))

    # Platform trust anchors (PEM bundle); None means the certifi bundle
    CA_BUNDLE: Optional[str] = os.getenv("CERTTRUST_CA_BUNDLE") or None

    # Network
    CONNECT_TIMEOUT: float = float(os.getenv("CERTTRUST_CONNECT_TIMEOUT", "0.2"))
    READ_TIMEOUT: Optional[float] = _optional_float("CERTTRUST_READ_TIMEOUT")

    # How long trust queries wait for initialization (None = forever)
    INIT_WAIT_TIMEOUT: Optional[float] = _optional_float("CERTTRUST_INIT_WAIT_TIMEOUT")

    # API
    API_HOST: str = os.getenv("API_HOST", "127.0.0.1")
    API_PORT: int = int(os.getenv("API_PORT", "8000"))
    CORS_ORIGINS: list = [o.strip() for o in os.getenv("CORS_ORIGINS", "http://localhost").split(",") if o.strip()]

    # File upload limits
    MAX_FILE_SIZE: int = 1 * 1024 * 1024  # 1MB, certificates are small

    # Logging
    LOG_LEVEL: str = "DEBUG" if DEBUG else os.getenv("LOG_LEVEL", "INFO").upper()

    @property
    def TRUSTSTORE_PATH(self) -> Path:
        return self.DATA_DIR / self.TRUSTSTORE_FILENAME

# Global settings instance
settings = Settings()
