"""Stage table and evolution chain adjacency — pure lookups, no I/O."""
from __future__ import annotations

from digital_adventure.content.loader import load_stages

_stages: dict[str, dict] | None = None


def _get_stages() -> dict[str, dict]:
    global _stages
    if _stages is None:
        _stages = {s["id"]: s for s in load_stages()}
    return _stages


def stage_config(stage: str) -> dict:
    """Look up a stage row, e.g. stage_config('champion')['wound_bonus'] == 5."""
    stages = _get_stages()
    if stage not in stages:
        raise ValueError(f"Unknown stage: {stage}")
    return stages[stage]


def wound_bonus(stage: str) -> int:
    return stage_config(stage)["wound_bonus"]


def is_evolution(chain: list[dict], current_index: int, target_index: int) -> bool:
    """The target stage evolves directly from the current one."""
    if not 0 <= target_index < len(chain):
        return False
    return chain[target_index].get("evolves_from_index") == current_index


def is_devolution(chain: list[dict], current_index: int, target_index: int) -> bool:
    """The current stage evolves directly from the target one."""
    if not 0 <= current_index < len(chain):
        return False
    return chain[current_index].get("evolves_from_index") == target_index
