"""
Factory for creating synthesis store backends.
"""

from worldmodel.config import StorageConfig
from worldmodel.core.store.base import SynthesisStore
from worldmodel.core.store.sqlite_store import SQLiteSynthesisStore
from worldmodel.utils.exceptions import ConfigurationError


class StoreFactory:
    """Factory for creating synthesis store backends from configuration."""

    @staticmethod
    def create(config: StorageConfig) -> SynthesisStore:
        """
        Create synthesis store from configuration.

        Args:
            config: Storage configuration

        Returns:
            Synthesis store instance

        Raises:
            ConfigurationError: If backend is not supported
        """
        if config.backend == "sqlite":
            return SQLiteSynthesisStore(db_path=config.sqlite_path)
        else:
            raise ConfigurationError(f"Unsupported storage backend: {config.backend}")
