# ==============================================
# Configuration Management
# ==============================================
#
# PURPOSE:
#   Load and validate all configuration from environment
#   variables / .env file. Provides typed config objects
#   to all other modules.
#
# CLASSES:
# --------
# - StorageConfig (dataclass)
#     backend: str       (default "file")  one of "file", "mongo", "memory"
#     data_dir: str      (default "data/")
#
# - MongoConfig (dataclass)
#     host: str          (default "localhost")
#     port: int          (default 27017)
#     user: str | None   (default None)
#     password: str | None (default None)
#     database: str      (default "calcconform")
#     collection: str    (default "kv_store")
#
# - ComplianceConfig (dataclass)
#     compliant_threshold: float   (default 10.0)
#     acceptable_threshold: float  (default 20.0)
#     history_limit: int           (default 5)
#
# - AppConfig (dataclass)
#     storage: StorageConfig
#     mongo: MongoConfig
#     compliance: ComplianceConfig
#     log_level: str     (default "INFO")
#
# FUNCTION:
# ---------
# - get_config() -> AppConfig
#     Load .env using python-dotenv, construct AppConfig.
#     Returns the same singleton on repeated calls.
#
# USAGE:
# ------
#   from calcconform.config import get_config
#   config = get_config()
#   print(config.storage.backend)
#   print(config.compliance.history_limit)
#
# ==============================================

import os
from dataclasses import dataclass, field
from typing import Optional
from pathlib import Path

from dotenv import load_dotenv


STORAGE_BACKENDS = ("file", "mongo", "memory")


@dataclass
class StorageConfig:
    """Durable storage configuration."""
    backend: str = "file"
    data_dir: str = "data/"


@dataclass
class MongoConfig:
    """MongoDB key-value storage configuration."""
    host: str = "localhost"
    port: int = 27017
    user: Optional[str] = None
    password: Optional[str] = None
    database: str = "calcconform"
    collection: str = "kv_store"


@dataclass
class ComplianceConfig:
    """Deviation thresholds and quick-calc history size."""
    compliant_threshold: float = 10.0
    acceptable_threshold: float = 20.0
    history_limit: int = 5


@dataclass
class AppConfig:
    """Main application configuration."""
    storage: StorageConfig = field(default_factory=StorageConfig)
    mongo: MongoConfig = field(default_factory=MongoConfig)
    compliance: ComplianceConfig = field(default_factory=ComplianceConfig)
    log_level: str = "INFO"


# Singleton instance
_config_instance: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """
    Load configuration from environment variables / .env file.
    Returns the same singleton instance on repeated calls.

    Returns:
        AppConfig: Application configuration

    Raises:
        ValueError: If CALCCONFORM_STORAGE names an unknown backend or the
                    compliance thresholds are not increasing.
    """
    global _config_instance

    if _config_instance is not None:
        return _config_instance

    # Load .env file from project root
    env_path = Path(__file__).parent.parent / ".env"
    load_dotenv(dotenv_path=env_path)

    storage_config = StorageConfig(
        backend=os.getenv("CALCCONFORM_STORAGE", "file").lower(),
        data_dir=os.getenv("CALCCONFORM_DATA_DIR", "data/")
    )
    if storage_config.backend not in STORAGE_BACKENDS:
        raise ValueError(
            f"Unknown storage backend '{storage_config.backend}', "
            f"expected one of {', '.join(STORAGE_BACKENDS)}"
        )

    mongo_config = MongoConfig(
        host=os.getenv("MONGO_HOST", "localhost"),
        port=int(os.getenv("MONGO_PORT", "27017")),
        user=os.getenv("MONGO_USER") or None,
        password=os.getenv("MONGO_PASSWORD") or None,
        database=os.getenv("MONGO_DATABASE", "calcconform"),
        collection=os.getenv("MONGO_COLLECTION", "kv_store")
    )

    compliance_config = ComplianceConfig(
        compliant_threshold=float(os.getenv("COMPLIANT_THRESHOLD", "10.0")),
        acceptable_threshold=float(os.getenv("ACCEPTABLE_THRESHOLD", "20.0")),
        history_limit=int(os.getenv("QUICK_CALC_HISTORY_LIMIT", "5"))
    )
    if compliance_config.compliant_threshold >= compliance_config.acceptable_threshold:
        raise ValueError("COMPLIANT_THRESHOLD must be lower than ACCEPTABLE_THRESHOLD")

    _config_instance = AppConfig(
        storage=storage_config,
        mongo=mongo_config,
        compliance=compliance_config,
        log_level=os.getenv("LOG_LEVEL", "INFO").upper()
    )

    return _config_instance
