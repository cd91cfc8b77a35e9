"""
基于 pydantic 的配置加载。

优先级: 默认值 < config.yaml < 环境变量（FRANCHISEHUB_*）。
"""

from __future__ import annotations

import logging
import os
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_CONFIG_PATH = Path(__file__).parent / "config.yaml"

STORAGE_BACKENDS = ("local", "s3", "memory")


def _storage_backend(value: str) -> str:
    v = (value or "local").strip().lower()
    if v not in STORAGE_BACKENDS:
        raise ValueError(f"unsupported storage backend: {v}")
    return v


class DatabaseConfig(BaseModel):
    model_config = ConfigDict(extra="ignore")

    url: str = "sqlite:///data/franchisehub.db"
    echo: bool = False
    auto_create_schema: bool = True


class StorageConfig(BaseModel):
    model_config = ConfigDict(extra="ignore")

    backend: str = "local"  # local/s3/memory
    root_dir: str = "data/objects"
    public_base_url: str = "/files"

    # s3
    region_name: Optional[str] = None
    endpoint_url: Optional[str] = None
    bucket_map: Dict[str, str] = Field(default_factory=dict)

    @field_validator("backend")
    @classmethod
    def _check_backend(cls, v: str) -> str:
        return _storage_backend(v)


class DocumentPolicyConfig(BaseModel):
    model_config = ConfigDict(extra="ignore")

    max_files: int = Field(3, ge=1)
    max_file_size_mb: float = Field(5, gt=0)
    allowed_mime_types: List[str] = Field(
        default_factory=lambda: ["application/pdf", "image/jpeg", "image/png"]
    )


class RetryConfig(BaseModel):
    model_config = ConfigDict(extra="ignore")

    max_retries: int = Field(3, ge=0)
    base_backoff_s: float = Field(0.2, ge=0)
    max_backoff_s: float = Field(2.0, ge=0)


class EventLogConfig(BaseModel):
    model_config = ConfigDict(extra="ignore")

    backends: List[str] = Field(default_factory=lambda: ["logging", "sqlalchemy"])


class LoggingConfig(BaseModel):
    model_config = ConfigDict(extra="ignore")

    level: str = "INFO"
    file: Optional[str] = None
    max_size: int = 10485760
    backup_count: int = 5
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class Settings(BaseModel):
    model_config = ConfigDict(extra="ignore")

    mode: str = "production"
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    documents: DocumentPolicyConfig = Field(default_factory=DocumentPolicyConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    event_log: EventLogConfig = Field(default_factory=EventLogConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    def apply_environment(self, environ: Optional[Dict[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ
        if env.get("FRANCHISEHUB_DB_URL"):
            self.database.url = env["FRANCHISEHUB_DB_URL"]
        if env.get("FRANCHISEHUB_MODE"):
            self.mode = env["FRANCHISEHUB_MODE"]
        if env.get("FRANCHISEHUB_STORAGE_BACKEND"):
            self.storage.backend = _storage_backend(env["FRANCHISEHUB_STORAGE_BACKEND"])
        if env.get("FRANCHISEHUB_STORAGE_ROOT"):
            self.storage.root_dir = env["FRANCHISEHUB_STORAGE_ROOT"]
        if env.get("FRANCHISEHUB_PUBLIC_BASE_URL"):
            self.storage.public_base_url = env["FRANCHISEHUB_PUBLIC_BASE_URL"]
        if env.get("FRANCHISEHUB_LOG_LEVEL"):
            self.logging.level = env["FRANCHISEHUB_LOG_LEVEL"]
        return self


def load_settings(config_path: Optional[str] = None, *, environ: Optional[Dict[str, str]] = None) -> Settings:
    """读取 YAML 配置（不存在则用默认值），再叠加环境变量。"""
    cfg_file = Path(config_path) if config_path else DEFAULT_CONFIG_PATH
    data: Dict[str, Any] = {}
    if cfg_file.exists():
        data = yaml.safe_load(cfg_file.read_text(encoding="utf-8")) or {}
    return Settings(**data).apply_environment(environ)


_HANDLER_NAME = "franchisehub-file"


def configure_logging(config: Optional[LoggingConfig] = None) -> logging.Logger:
    """配置 franchisehub 包的日志级别、格式和可选的滚动文件输出；可重复调用。"""
    config = config or LoggingConfig()
    logger = logging.getLogger("franchisehub")
    logger.setLevel(getattr(logging, config.level.upper(), logging.INFO))
    formatter = logging.Formatter(config.format)

    if not any(isinstance(h, logging.StreamHandler) and not isinstance(h, logging.FileHandler) for h in logger.handlers):
        stream = logging.StreamHandler()
        stream.setFormatter(formatter)
        logger.addHandler(stream)

    for h in list(logger.handlers):
        if h.get_name() == _HANDLER_NAME:
            logger.removeHandler(h)
            h.close()
    if config.file:
        Path(config.file).parent.mkdir(parents=True, exist_ok=True)
        fh = RotatingFileHandler(
            config.file, maxBytes=config.max_size, backupCount=config.backup_count, encoding="utf-8"
        )
        fh.set_name(_HANDLER_NAME)
        fh.setFormatter(formatter)
        logger.addHandler(fh)
    return logger
