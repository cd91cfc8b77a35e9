from .settings import (
    DatabaseConfig,
    DocumentPolicyConfig,
    EventLogConfig,
    LoggingConfig,
    RetryConfig,
    Settings,
    StorageConfig,
    configure_logging,
    load_settings,
)

__all__ = [
    "DatabaseConfig",
    "DocumentPolicyConfig",
    "EventLogConfig",
    "LoggingConfig",
    "RetryConfig",
    "Settings",
    "StorageConfig",
    "configure_logging",
    "load_settings",
]
