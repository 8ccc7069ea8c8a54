"""Entry point: python -m shotlist

Opens the interactive editor over the persisted shot list.
"""

from __future__ import annotations

import asyncio
import logging

from shotlist.config import load_config


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def main() -> None:
    config = load_config()
    _setup_logging(config.log_level)

    from shotlist.cli import ShotlistCLI
    from shotlist.storage import FileSlotBackend, PersistenceAdapter
    from shotlist.store import RecordStore

    persistence = PersistenceAdapter(
        FileSlotBackend(config.storage.data_dir),
        key=config.storage.slot,
        legacy_key=config.storage.legacy_slot,
    )
    store = RecordStore.open(persistence, title_prefix=config.title_prefix)
    cli = ShotlistCLI(store, export_dir=config.export.directory)

    try:
        asyncio.run(cli.run())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
