"""
main.py
-------
Command line entry point.

Usage::

    python main.py --version
    python main.py --create-storage [CONFIG]
    python main.py --import-data [CONFIG]

CONFIG defaults to ``IMPORT_CONFIG`` (``cfg/config.json``). The config file
names the provider, its connection block and one block per action::

    {
      "provider": "mysql",
      "connections": {"mysql": {"user": "root", "database": "shop"}},
      "actions": {
        "create-storage": {"storage-definition": "defs/storage.json",
                           "replace-existing": true},
        "import-data": {"storage-definition": "defs/storage.json",
                        "import-definition": "defs/import.json"}
      }
    }

Definitions may be given inline (a JSON object) or as paths relative to the
working directory.
"""
from __future__ import annotations

import argparse
import sys

from config import CONFIG, ImportConfigError, load_import_config
from importer import import_data
from logger import get_logger
from models.definitions import ImportDefinition, StorageDefinition, load_definition
from storage import StorageError, get_adapter

log = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=CONFIG.app_name,
        description="Create a database schema from a storage definition and import data into it.",
    )
    mode = parser.add_mutually_exclusive_group(required=True)
    mode.add_argument("--version", action="store_true", help="print the version and exit")
    mode.add_argument(
        "--create-storage", action="store_true",
        help="create (or replace) the storage described by the 'create-storage' action",
    )
    mode.add_argument(
        "--import-data", action="store_true",
        help="load data described by the 'import-data' action",
    )
    parser.add_argument("config", nargs="?", help="path to the import config JSON file")
    return parser


def run_create_storage(config_path: str | None) -> int:
    cfg = load_import_config(config_path)
    action = cfg.action("create-storage")
    replace_existing = bool(action.get("replace-existing", False))
    definition = StorageDefinition.from_dict(
        load_definition(action.get("storage-definition"), cfg.base_dir)
    )

    with get_adapter(cfg.provider, cfg.connection()) as adapter:
        adapter.create_storage(definition, replace_existing)
    return 0


def run_import_data(config_path: str | None) -> int:
    cfg = load_import_config(config_path)
    action = cfg.action("import-data")
    storage_definition = StorageDefinition.from_dict(
        load_definition(action.get("storage-definition"), cfg.base_dir)
    )
    import_definition = ImportDefinition.from_dict(
        load_definition(action.get("import-definition"), cfg.base_dir)
    )

    with get_adapter(cfg.provider, cfg.connection()) as adapter:
        report = import_data(
            storage_definition, import_definition, adapter, base_dir=cfg.base_dir
        )
    for result in report.errors:
        log.error("%s", result)
    return 0 if report.ok else 1


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    if args.version:
        print(f"{CONFIG.app_name}, v. {CONFIG.app_version}")
        return 0

    try:
        if args.create_storage:
            return run_create_storage(args.config)
        return run_import_data(args.config)
    except (ImportConfigError, StorageError) as exc:
        log.error("%s", exc)
        return 2


if __name__ == "__main__":
    sys.exit(main())
