"""Attack tag normalization — turns strings like 'Weapon II' into (kind, rank)."""
from __future__ import annotations

import re
from enum import Enum


class TagKind(str, Enum):
    WEAPON = "weapon"
    ARMOR_PIERCING = "armor_piercing"
    AMMO = "ammo"
    SIGNATURE_MOVE = "signature_move"
    CERTAIN_STRIKE = "certain_strike"
    CHARGE_ATTACK = "charge_attack"
    MIGHTY_BLOW = "mighty_blow"
    AREA_ATTACK = "area_attack"
    OTHER = "other"


ROMAN_NUMERALS: dict[str, int] = {
    "I": 1, "II": 2, "III": 3, "IV": 4, "V": 5,
    "VI": 6, "VII": 7, "VIII": 8, "IX": 9, "X": 10,
}

# Longest prefixes first so "Armor Piercing" never matches as something shorter.
_PREFIXES: list[tuple[str, TagKind]] = [
    ("armor piercing", TagKind.ARMOR_PIERCING),
    ("signature move", TagKind.SIGNATURE_MOVE),
    ("certain strike", TagKind.CERTAIN_STRIKE),
    ("charge attack", TagKind.CHARGE_ATTACK),
    ("mighty blow", TagKind.MIGHTY_BLOW),
    ("area attack", TagKind.AREA_ATTACK),
    ("weapon", TagKind.WEAPON),
    ("ammo", TagKind.AMMO),
]

_RANK_RE = re.compile(r"^\s*(\d+|[IVX]+)\s*$", re.IGNORECASE)


def parse_rank(text: str) -> int:
    """Parse '3', 'III' or 'iii' into an int. Unparseable text is rank 0."""
    m = _RANK_RE.match(text)
    if not m:
        return 0
    token = m.group(1).upper()
    if token.isdigit():
        return int(token)
    return ROMAN_NUMERALS.get(token, 0)


def parse_tag(raw: str) -> tuple[TagKind, int]:
    """Normalize one tag string.

    >>> parse_tag("Weapon II")
    (<TagKind.WEAPON: 'weapon'>, 2)
    >>> parse_tag("Armor Piercing 3")
    (<TagKind.ARMOR_PIERCING: 'armor_piercing'>, 3)
    """
    text = raw.strip()
    lowered = text.lower()
    for prefix, kind in _PREFIXES:
        if lowered.startswith(prefix):
            rest = text[len(prefix):].lstrip(" :")
            # "Area Attack: Blast" carries a shape, not a rank
            rank = parse_rank(rest) if rest and kind != TagKind.AREA_ATTACK else 0
            return kind, rank
    return TagKind.OTHER, 0
