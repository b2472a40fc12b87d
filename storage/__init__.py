"""
storage/__init__.py
-------------------
Storage adapters. Backends are resolved by provider name and imported on
first use, so a provider's driver is only loaded when it is selected.
"""
from __future__ import annotations

import importlib
from collections.abc import Mapping
from typing import Any

from storage.base import Batch, BatchState, StorageAdapter
from storage.errors import (
    BatchNotOpenError,
    ConfigurationError,
    ConnectionLostError,
    DataSourceError,
    DefaultValueUnsupportedError,
    ErrorKind,
    ImportEntryError,
    InvalidValueTypeError,
    MalformedEntryError,
    StatementError,
    StorageDefinitionError,
    StorageError,
    TableNotFoundError,
    UnsupportedTypeError,
)

# provider name → module exposing ``get_adapter(connection_config)``
PROVIDERS: dict[str, str] = {
    "mysql": "storage.mysql_adapter",
}


def get_adapter(provider: str, connection_config: Mapping[str, Any]) -> StorageAdapter:
    """
    Return a storage adapter for *provider*.

    Raises:
        ConfigurationError: If the provider is unknown.
    """
    try:
        module_name = PROVIDERS[provider]
    except KeyError:
        raise ConfigurationError(
            f"Unknown storage provider '{provider}'. Available: {', '.join(sorted(PROVIDERS))}."
        ) from None
    module = importlib.import_module(module_name)
    return module.get_adapter(connection_config)


__all__ = [
    "Batch",
    "BatchState",
    "StorageAdapter",
    "get_adapter",
    "PROVIDERS",
    "BatchNotOpenError",
    "ConfigurationError",
    "ConnectionLostError",
    "DataSourceError",
    "DefaultValueUnsupportedError",
    "ErrorKind",
    "ImportEntryError",
    "InvalidValueTypeError",
    "MalformedEntryError",
    "StatementError",
    "StorageDefinitionError",
    "StorageError",
    "TableNotFoundError",
    "UnsupportedTypeError",
]
