import logging

import pytest
from pydantic import ValidationError as PydanticValidationError

from franchisehub.application.bootstrap import build_services, document_policy_from, retry_policy_from
from franchisehub.config.settings import LoggingConfig, Settings, configure_logging, load_settings
from franchisehub.infrastructure.event_log.composite_event_log import CompositeEventLog
from franchisehub.infrastructure.storage.object_store import InMemoryObjectStore
from franchisehub.infrastructure.stores.memory_record_store import InMemoryRecordStore


def test_defaults_without_file(tmp_path):
    s = load_settings(str(tmp_path / "missing.yaml"), environ={})
    assert s.database.url == "sqlite:///data/franchisehub.db"
    assert s.documents.max_files == 3
    assert s.retry.max_retries == 3


def test_yaml_and_environment_override(tmp_path):
    cfg = tmp_path / "config.yaml"
    cfg.write_text(
        "database:\n  url: sqlite:///from-yaml.db\ndocuments:\n  max_files: 2\nunknown_section: 1\n",
        encoding="utf-8",
    )
    s = load_settings(str(cfg), environ={"FRANCHISEHUB_DB_URL": "sqlite:///from-env.db", "FRANCHISEHUB_LOG_LEVEL": "DEBUG"})
    assert s.database.url == "sqlite:///from-env.db"
    assert s.documents.max_files == 2
    assert s.logging.level == "DEBUG"


def test_bundled_config_loads():
    s = load_settings(environ={})
    assert s.storage.backend == "local"
    assert "application/pdf" in s.documents.allowed_mime_types


def test_invalid_values_rejected():
    with pytest.raises(PydanticValidationError):
        Settings(storage={"backend": "ftp"})
    with pytest.raises(PydanticValidationError):
        Settings(documents={"max_files": 0})


def test_policies_from_settings():
    s = Settings(documents={"max_files": 2, "max_file_size_mb": 1}, retry={"max_retries": 1, "base_backoff_s": 0.5})
    policy = document_policy_from(s)
    assert policy.max_files == 2
    assert policy.max_file_size_bytes == 1024 * 1024
    assert retry_policy_from(s).max_retries == 1


def test_configure_logging_with_rotating_file(tmp_path):
    log_file = tmp_path / "logs" / "franchisehub.log"
    logger = configure_logging(LoggingConfig(level="DEBUG", file=str(log_file)))
    configure_logging(LoggingConfig(level="DEBUG", file=str(log_file)))
    file_handlers = [h for h in logger.handlers if isinstance(h, logging.FileHandler)]
    assert len(file_handlers) == 1
    logging.getLogger("franchisehub.test").info("hello")
    file_handlers[0].flush()
    assert "hello" in log_file.read_text(encoding="utf-8")
    configure_logging(LoggingConfig())
    assert not [h for h in logger.handlers if isinstance(h, logging.FileHandler)]


def test_build_services_from_settings(tmp_path):
    s = Settings(
        database={"url": f"sqlite:///{tmp_path / 'fh.db'}"},
        storage={"backend": "memory"},
        event_log={"backends": ["logging", "memory"]},
    )
    services = build_services(s, records=InMemoryRecordStore())
    assert isinstance(services.objects, InMemoryObjectStore)
    assert isinstance(services.events, CompositeEventLog)
    services.close()


def test_build_services_applies_logging_and_echo(tmp_path):
    log_file = tmp_path / "fh.log"
    s = Settings(
        database={"url": f"sqlite:///{tmp_path / 'fh.db'}", "echo": True},
        storage={"backend": "memory"},
        event_log={"backends": ["sqlalchemy"]},
        logging={"level": "DEBUG", "file": str(log_file)},
    )
    services = build_services(s)
    try:
        logger = logging.getLogger("franchisehub")
        assert logger.level == logging.DEBUG
        assert any(isinstance(h, logging.FileHandler) for h in logger.handlers)
        assert services.records._provider.engine.echo is True
        assert services.events._provider.engine.echo is True
    finally:
        services.close()
        configure_logging(LoggingConfig())
