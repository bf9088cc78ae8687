"""Effect catalog — effect name to alignment and attack-type restriction."""
from __future__ import annotations

from digital_adventure.content.loader import load_effects

ALIGNMENT_TO_KIND = {"P": "buff", "N": "debuff", "NA": "status"}

_catalog: dict[str, dict] | None = None


def _get_catalog() -> dict[str, dict]:
    global _catalog
    if _catalog is None:
        _catalog = load_effects()
    return _catalog


def get_alignment(effect_name: str) -> str | None:
    entry = _get_catalog().get(effect_name)
    return entry.get("alignment") if entry else None


def effect_kind(effect_name: str) -> str:
    """Map an effect to buff/debuff/status. Unknown effects are statuses."""
    return ALIGNMENT_TO_KIND.get(get_alignment(effect_name) or "NA", "status")


def is_effect_valid_for_type(effect_name: str, attack_type: str) -> bool:
    """Check if an effect may ride on a damage or support attack.

    Unknown effects are allowed on either type.
    """
    entry = _get_catalog().get(effect_name)
    if not entry:
        return True
    restriction = entry.get("attack_type", "both")
    if restriction == "both":
        return True
    return restriction == attack_type
