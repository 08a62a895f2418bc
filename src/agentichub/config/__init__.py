"""Settings schema and TOML configuration loading."""

from .loader import ConfigLoader, HubSettings, LoggingSettings, configure_logging

__all__ = ["ConfigLoader", "HubSettings", "LoggingSettings", "configure_logging"]
