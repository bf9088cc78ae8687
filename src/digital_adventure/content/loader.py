from __future__ import annotations
import tomllib
from pathlib import Path
from typing import Any

CONTENT_DIR = Path(__file__).parent

def load_toml(filepath: Path) -> dict[str, Any]:
    with open(filepath, "rb") as f:
        return tomllib.load(f)

def load_effects() -> dict[str, dict]:
    data = load_toml(CONTENT_DIR / "effects.toml")
    return dict(data.get("effects", {}))

def load_stages() -> list[dict]:
    data = load_toml(CONTENT_DIR / "stages.toml")
    return list(data.get("stages", []))

def load_special_orders() -> tuple[dict[str, list[int]], dict[str, list[dict]]]:
    """Return (thresholds by campaign level, orders by attribute)."""
    data = load_toml(CONTENT_DIR / "special_orders.toml")
    return dict(data.get("thresholds", {})), dict(data.get("orders", {}))


def load_roster(filepath: Path) -> dict[str, list[dict]]:
    """Load a roster file with [[digimon]], [[tamers]] and [[evolution_lines]] tables."""
    data = load_toml(filepath)
    return {
        "digimon": list(data.get("digimon", [])),
        "tamers": list(data.get("tamers", [])),
        "evolution_lines": list(data.get("evolution_lines", [])),
    }
