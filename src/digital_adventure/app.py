"""Application bootstrap — wires config, storage, systems and the dispatcher."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from digital_adventure.config import load_config
from digital_adventure.content.loader import load_roster

logger = logging.getLogger(__name__)


class CampaignApp:
    """Owns the lazily built database, repos and dispatcher for one campaign file."""

    def __init__(self, config_path: Path | None = None, db_path: str | None = None):
        self.config = load_config(config_path)
        if db_path:
            self.config["storage"]["db_path"] = db_path

        self._db = None
        self._repos: dict[str, Any] | None = None
        self._registry = None
        self._dispatcher = None

    # -- Component initialization (lazy) --

    def _get_db(self):
        if self._db is None:
            from digital_adventure.storage.database import Database

            self._db = Database(self.config["storage"]["db_path"])
            self._db.initialize()
        return self._db

    def get_repos(self) -> dict[str, Any]:
        if self._repos is None:
            from digital_adventure.storage.repos import build_repos

            self._repos = build_repos(self._get_db())
        return self._repos

    def get_dispatcher(self):
        if self._dispatcher is None:
            from digital_adventure.engine.action_dispatcher import ActionDispatcher
            from digital_adventure.engine.system_registry import SystemRegistry

            self._registry = SystemRegistry()
            self._registry.register_defaults()
            self._dispatcher = ActionDispatcher(self._registry, self.get_repos())
        return self._dispatcher

    # -- Stat store --

    def import_roster(self, filepath: Path) -> dict[str, int]:
        """Load digimon, tamers and evolution lines from a roster TOML file."""
        from digital_adventure.models.entity import Digimon, EvolutionLine, Tamer

        roster = load_roster(filepath)
        repos = self.get_repos()
        for raw in roster["digimon"]:
            repos["digimon"].save(Digimon.model_validate(raw).model_dump(mode="json"))
        for raw in roster["tamers"]:
            repos["tamer"].save(Tamer.model_validate(raw).model_dump(mode="json"))
        for raw in roster["evolution_lines"]:
            repos["evolution_line"].save(EvolutionLine.model_validate(raw).model_dump(mode="json"))
        counts = {kind: len(items) for kind, items in roster.items()}
        logger.info(f"Imported roster {filepath}: {counts}")
        return counts

    def close(self) -> None:
        if self._db is not None:
            self._db.close()
            self._db = None
