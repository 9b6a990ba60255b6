"""Configuration management for the facility-history CLI and MCP server.

Reads a TOML config file into a typed Config dataclass.
Default location: ``~/.config/facility-history/config.toml``.
Override with the ``FACILITY_HISTORY_CONFIG`` environment variable.

Example::

    [store]
    provider = "postgres"

    [database]
    host = "localhost"
    name = "facility_history"

    [storage]
    provider = "gcs"
    bucket = "cleaning-exports"

    [export]
    timezone = "America/Sao_Paulo"
    uploads_base_url = "https://api.example.com"
    locator = "url"
"""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any

_DEFAULT_CONFIG_DIR = Path("~/.config/facility-history").expanduser()
_DEFAULT_DATA_DIR = Path("./data")


def _config_path() -> Path:
    env = os.environ.get("FACILITY_HISTORY_CONFIG")
    if env:
        return Path(env).expanduser()
    return _DEFAULT_CONFIG_DIR / "config.toml"


@dataclass
class Config:
    # Store backend: "memory" (reads a JSON dump) or "postgres"
    store_provider: str = "memory"
    data_file: str = ""

    # Postgres settings (only used when store_provider == "postgres")
    db_host: str = "localhost"
    db_port: int = 5432
    db_name: str = "facility_history"
    db_user: str = "postgres"
    db_password: str = "postgres"

    # Artifact storage: "disk" or "gcs"
    storage_provider: str = "disk"
    gcs_bucket: str = ""
    gcs_prefix: str = ""
    gcs_project: str = ""
    gcs_credentials_file: str = ""

    data_dir: str = str(_DEFAULT_DATA_DIR)

    timezone: str = "America/Sao_Paulo"
    uploads_base_url: str = ""
    locator: str = "inline"
    artifact_ttl_seconds: float = 300.0
    match_threshold: float = 0.7
    record_cap: int = 50_000
    page_size: int = 500
    batch_size: int = 1000

    @property
    def storage_path(self) -> str:
        return str(Path(self.data_dir) / "storage")

    @property
    def work_dir(self) -> str:
        return str(Path(self.data_dir) / "work")

    @property
    def uses_postgres(self) -> bool:
        return self.store_provider == "postgres"

    @property
    def uses_gcs(self) -> bool:
        return self.storage_provider == "gcs"


def load_config() -> Config:
    """Load config from disk, falling back to defaults + env overrides."""
    path = _config_path()
    cfg = Config()

    if path.exists():
        with open(path, "rb") as f:
            data = tomllib.load(f)
        _apply_file(cfg, data)

    # Environment variables always take precedence
    cfg.store_provider = os.environ.get("FACILITY_HISTORY_STORE", cfg.store_provider)
    cfg.data_file = os.environ.get("FACILITY_HISTORY_DATA", cfg.data_file)
    cfg.db_host = os.environ.get("POSTGRES_HOST", cfg.db_host)
    cfg.db_port = int(os.environ.get("POSTGRES_PORT", str(cfg.db_port)))
    cfg.db_name = os.environ.get("POSTGRES_DB", cfg.db_name)
    cfg.db_user = os.environ.get("POSTGRES_USER", cfg.db_user)
    cfg.db_password = os.environ.get("POSTGRES_PASSWORD", cfg.db_password)
    cfg.storage_provider = os.environ.get(
        "FACILITY_HISTORY_STORAGE", cfg.storage_provider
    )
    cfg.gcs_bucket = os.environ.get("GCS_BUCKET_NAME", cfg.gcs_bucket)
    cfg.gcs_project = os.environ.get("GCS_PROJECT_ID", cfg.gcs_project)
    cfg.gcs_credentials_file = os.environ.get(
        "GOOGLE_APPLICATION_CREDENTIALS", cfg.gcs_credentials_file
    )
    cfg.uploads_base_url = os.environ.get("UPLOADS_BASE_URL", cfg.uploads_base_url)
    cfg.timezone = os.environ.get("FACILITY_HISTORY_TIMEZONE", cfg.timezone)

    return cfg


def _apply_file(cfg: Config, data: dict[str, Any]) -> None:
    store_section = data.get("store", {})
    db_section = data.get("database", {})
    storage_section = data.get("storage", {})
    export_section = data.get("export", {})
    data_section = data.get("data", {})

    cfg.store_provider = store_section.get("provider", cfg.store_provider)
    cfg.data_file = store_section.get("data_file", cfg.data_file)

    # A [database] section without [store] implies postgres
    if db_section and "store" not in data:
        cfg.store_provider = "postgres"

    cfg.db_host = db_section.get("host", cfg.db_host)
    cfg.db_port = int(db_section.get("port", cfg.db_port))
    cfg.db_name = db_section.get("name", cfg.db_name)
    cfg.db_user = db_section.get("user", cfg.db_user)
    cfg.db_password = db_section.get("password", cfg.db_password)

    cfg.storage_provider = storage_section.get("provider", cfg.storage_provider)
    cfg.gcs_bucket = storage_section.get("bucket", cfg.gcs_bucket)
    cfg.gcs_prefix = storage_section.get("prefix", cfg.gcs_prefix)
    cfg.gcs_project = storage_section.get("project", cfg.gcs_project)
    cfg.gcs_credentials_file = storage_section.get(
        "credentials_file", cfg.gcs_credentials_file
    )

    cfg.timezone = export_section.get("timezone", cfg.timezone)
    cfg.uploads_base_url = export_section.get("uploads_base_url", cfg.uploads_base_url)
    cfg.locator = export_section.get("locator", cfg.locator)
    cfg.artifact_ttl_seconds = float(
        export_section.get("ttl_seconds", cfg.artifact_ttl_seconds)
    )
    cfg.match_threshold = float(
        export_section.get("match_threshold", cfg.match_threshold)
    )
    cfg.record_cap = int(export_section.get("record_cap", cfg.record_cap))
    cfg.page_size = int(export_section.get("page_size", cfg.page_size))
    cfg.batch_size = int(export_section.get("batch_size", cfg.batch_size))

    cfg.data_dir = data_section.get("dir", cfg.data_dir)


def config_to_dict(cfg: Config) -> dict[str, Any]:
    """Convert a Config into the canonical dict for ``FacilityHistory.from_config``."""
    store_config: dict[str, Any] = {}
    if cfg.uses_postgres:
        store_config = {
            "host": cfg.db_host,
            "port": cfg.db_port,
            "database": cfg.db_name,
            "user": cfg.db_user,
            "password": cfg.db_password,
        }
    elif cfg.data_file:
        store_config = {"path": cfg.data_file}

    if cfg.uses_gcs:
        storage_config: dict[str, Any] = {
            "bucket": cfg.gcs_bucket,
            "prefix": cfg.gcs_prefix,
            "project": cfg.gcs_project or None,
            "credentials_file": cfg.gcs_credentials_file or None,
        }
    else:
        storage_config = {"base_path": cfg.storage_path}

    return {
        "storage": {"provider": cfg.storage_provider, "config": storage_config},
        "store": {"provider": cfg.store_provider, "config": store_config},
        "export": {
            "timezone": cfg.timezone,
            "uploads_base_url": cfg.uploads_base_url or None,
            "locator": cfg.locator,
            "artifact_ttl_seconds": cfg.artifact_ttl_seconds,
            "match_threshold": cfg.match_threshold,
            "record_cap": cfg.record_cap,
            "page_size": cfg.page_size,
            "batch_size": cfg.batch_size,
            "work_dir": cfg.work_dir,
        },
    }


def config_exists() -> bool:
    return _config_path().exists()


def config_path_display() -> str:
    return str(_config_path())
