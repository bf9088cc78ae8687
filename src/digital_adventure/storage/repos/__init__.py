from __future__ import annotations

from digital_adventure.storage.repos.encounter_repo import EncounterRepo
from digital_adventure.storage.repos.stat_store_repo import DigimonRepo, EvolutionLineRepo, TamerRepo

__all__ = [
    "DigimonRepo",
    "EncounterRepo",
    "EvolutionLineRepo",
    "TamerRepo",
]


def build_repos(db) -> dict:
    """The repo mapping the dispatcher and stat resolver expect."""
    return {
        "digimon": DigimonRepo(db),
        "tamer": TamerRepo(db),
        "evolution_line": EvolutionLineRepo(db),
        "encounter": EncounterRepo(db),
    }
