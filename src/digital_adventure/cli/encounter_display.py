"""Encounter rendering — participants, pending requests and the battle log."""
from __future__ import annotations

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from digital_adventure.models.encounter import CombatParticipant, Encounter, EffectKind, Phase

console = Console()

_PHASE_COLORS = {
    Phase.SETUP: "cyan",
    Phase.INITIATIVE: "yellow",
    Phase.COMBAT: "red",
    Phase.ENDED: "dim",
}

_EFFECT_COLORS = {
    EffectKind.BUFF: "green",
    EffectKind.DEBUFF: "red",
    EffectKind.STATUS: "yellow",
}


def wound_bar(current: int, maximum: int, width: int = 10) -> str:
    """Wounds fill the bar from the left; a full bar is a knockout."""
    if maximum <= 0:
        return f"[dim]{'░' * width}[/dim]"
    pct = min(1.0, current / maximum)
    filled = int(pct * width)
    color = "green" if pct < 0.5 else ("yellow" if pct < 0.75 else "red")
    return f"[{color}]{'█' * filled}[/{color}][dim]{'░' * (width - filled)}[/dim]"


class EncounterDisplay:
    def __init__(self, out: Console | None = None) -> None:
        self.console = out or console

    def show_encounter(self, encounter: Encounter, log_limit: int = 10) -> None:
        self.show_header(encounter)
        self.show_participants(encounter)
        if encounter.hazards:
            self.show_hazards(encounter)
        if encounter.pending_requests:
            self.show_requests(encounter)
        if encounter.battle_log:
            self.show_log(encounter, limit=log_limit)

    def show_header(self, encounter: Encounter) -> None:
        color = _PHASE_COLORS.get(encounter.phase, "white")
        content = Text()
        content.append(f"{encounter.name}\n", style="bold")
        content.append(f"Phase: {encounter.phase.value}", style=color)
        if encounter.phase == Phase.COMBAT:
            content.append(f"   Round {encounter.round}")
        content.append(f"   v{encounter.version}", style="dim")
        self.console.print(Panel(content, border_style=color, box=box.ROUNDED))

    def show_participants(self, encounter: Encounter) -> None:
        table = Table(box=box.SIMPLE_HEAVY, show_edge=False)
        table.add_column("#", justify="right", style="dim")
        table.add_column("Name")
        table.add_column("Init", justify="right")
        table.add_column("Wounds")
        table.add_column("Actions", justify="center")
        table.add_column("Stance")
        table.add_column("Dodge -", justify="right")
        table.add_column("Effects")
        table.add_column("ID", style="dim")

        ordered = [encounter.get_participant(pid) for pid in encounter.turn_order]
        for position, p in enumerate(ordered, 1):
            if p is None:
                continue
            table.add_row(
                str(position),
                self._name_cell(encounter, p),
                str(p.initiative),
                f"{wound_bar(p.current_wounds, p.max_wounds)} {p.current_wounds}/{p.max_wounds}",
                str(p.actions_remaining.simple),
                p.current_stance.value,
                str(p.dodge_penalty) if p.dodge_penalty else "",
                self._effects_cell(p),
                p.id,
            )
        self.console.print(table)

    def _name_cell(self, encounter: Encounter, p: CombatParticipant) -> str:
        color = "red" if p.is_enemy else "green"
        name = f"[{color}]{encounter.display_name(p)}[/{color}]"
        if p.is_active:
            name = f"[bold]> {name}[/bold]"
        return name

    def _effects_cell(self, p: CombatParticipant) -> str:
        tags = []
        for effect in p.active_effects:
            color = _EFFECT_COLORS.get(effect.kind, "cyan")
            label = effect.name if effect.value is None else f"{effect.name} +{effect.value}"
            tags.append(f"[{color}]{label}[/{color}]")
        return " ".join(tags)

    def show_hazards(self, encounter: Encounter) -> None:
        lines = []
        for h in encounter.hazards:
            duration = f"{h.duration} rd" if h.duration is not None else "permanent"
            lines.append(f"[magenta]{h.name}[/magenta] ({duration}) {h.description}".rstrip())
        self.console.print(Panel("\n".join(lines), title="Hazards", border_style="magenta", box=box.ROUNDED))

    def show_requests(self, encounter: Encounter) -> None:
        table = Table(title="Pending requests", box=box.SIMPLE, show_edge=False)
        table.add_column("Request", style="dim")
        table.add_column("Type", style="yellow")
        table.add_column("For")
        table.add_column("Details")
        for r in encounter.pending_requests:
            details = ""
            attack = getattr(r, "attack", None)
            if attack is not None:
                details = (
                    f"{attack.attacker_name} -> {attack.target_name} "
                    f"({attack.attack_name}, {attack.accuracy_successes} successes)"
                )
            elif r.target_participant_id:
                details = encounter.name_of(r.target_participant_id)
            table.add_row(r.id, r.type, r.target_tamer_id, details)
        self.console.print(table)

    def show_log(self, encounter: Encounter, limit: int | None = 10) -> None:
        entries = encounter.battle_log[-limit:] if limit else encounter.battle_log
        self.console.print("[bold]Battle log[/bold]")
        for e in entries:
            target = f" -> {e.target}" if e.target else ""
            result = f": {e.result}" if e.result else ""
            tags = f" [dim]({', '.join(e.effects)})[/dim]" if e.effects else ""
            self.console.print(f"  [dim]R{e.round}[/dim] [bold]{e.actor_name}[/bold] {e.action}{target}{result}{tags}")

    def show_encounter_list(self, encounters: list[dict]) -> None:
        if not encounters:
            self.console.print("[dim]No encounters yet.[/dim]")
            return
        table = Table(box=box.SIMPLE, show_edge=False)
        table.add_column("ID", style="dim")
        table.add_column("Name")
        table.add_column("Phase")
        table.add_column("Version", justify="right")
        table.add_column("Updated", style="dim")
        for row in encounters:
            table.add_row(row["id"], row["name"], row["phase"], str(row["version"]), row["updated_at"])
        self.console.print(table)

    def show_error(self, reason: str) -> None:
        self.console.print(f"[bold red]Error:[/bold red] {reason}")
