"""Battle report export — renders an encounter's log to Markdown."""
from __future__ import annotations

from pathlib import Path

from jinja2 import Environment, FileSystemLoader

from digital_adventure.models.encounter import Encounter

_TEMPLATES_DIR = Path(__file__).parent / "templates"
_jinja_env: Environment | None = None


def _get_jinja() -> Environment:
    global _jinja_env
    if _jinja_env is None:
        _jinja_env = Environment(
            loader=FileSystemLoader(str(_TEMPLATES_DIR)),
            autoescape=False,
            trim_blocks=True,
            lstrip_blocks=True,
        )
    return _jinja_env


def summarize(encounter: Encounter) -> dict:
    """Per-actor damage dealt and hits landed, from the log's damage breakdowns."""
    totals: dict[str, dict[str, int]] = {}
    for entry in encounter.battle_log:
        if entry.hit is None:
            continue
        # Dodge entries are logged by the defender; credit the damage to whoever took it.
        row = totals.setdefault(entry.actor_name, {"hits_taken": 0, "damage_taken": 0, "dodged": 0})
        if entry.hit:
            row["hits_taken"] += 1
            row["damage_taken"] += entry.final_damage or 0
        else:
            row["dodged"] += 1
    return totals


def render_report(encounter: Encounter) -> str:
    template = _get_jinja().get_template("battle_report.md.j2")
    rounds: dict[int, list] = {}
    for entry in encounter.battle_log:
        rounds.setdefault(entry.round, []).append(entry)
    return template.render(
        encounter=encounter,
        participants=[
            {"name": encounter.display_name(p), "p": p}
            for p in (encounter.get_participant(pid) for pid in encounter.turn_order)
            if p is not None
        ],
        rounds=sorted(rounds.items()),
        totals=summarize(encounter),
    )


def write_report(encounter: Encounter, path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(render_report(encounter), encoding="utf-8")
    return path
