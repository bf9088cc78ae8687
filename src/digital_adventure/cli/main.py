"""Typer CLI application."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Optional

import typer

app = typer.Typer(
    name="digital-adventure",
    help="Encounter combat tracker for Digimon tabletop campaigns",
    no_args_is_help=True,
)


def _parse_dice(raw: Optional[str]) -> Optional[list[int]]:
    """'5,2,6' -> [5, 2, 6]. Faces must be d6 results."""
    if raw is None:
        return None
    try:
        dice = [int(part) for part in raw.replace(" ", "").split(",") if part]
    except ValueError:
        raise typer.BadParameter(f"Dice must be comma-separated numbers, got {raw!r}")
    if any(not 1 <= d <= 6 for d in dice):
        raise typer.BadParameter("Dice faces must be between 1 and 6")
    return dice


def _app(ctx: typer.Context):
    from digital_adventure.app import CampaignApp

    if ctx.obj is None:
        ctx.obj = {}
    if "app" not in ctx.obj:
        ctx.obj["app"] = CampaignApp(config_path=ctx.obj.get("config_path"), db_path=ctx.obj.get("db_path"))
    return ctx.obj["app"]


def _run(ctx: typer.Context, encounter_id: str, command: dict[str, Any]) -> None:
    """Dispatch one command and show the resulting encounter, or the reason it was refused."""
    from digital_adventure.cli.encounter_display import EncounterDisplay
    from digital_adventure.engine.errors import EngineError

    display = EncounterDisplay()
    try:
        encounter = _app(ctx).get_dispatcher().dispatch(encounter_id, command)
    except EngineError as e:
        display.show_error(e.reason)
        raise typer.Exit(code=1)
    display.show_encounter(encounter)


@app.callback()
def main(
    ctx: typer.Context,
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to config.toml"),
    db: Optional[str] = typer.Option(None, "--db", help="Campaign database file"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    from digital_adventure.config import load_config

    level = "DEBUG" if verbose else load_config(config)["logging"]["level"]
    logging.basicConfig(level=getattr(logging, str(level).upper(), logging.WARNING),
                        format="%(levelname)s %(name)s: %(message)s")
    ctx.obj = {"config_path": config, "db_path": db}


# -- Campaign data --


@app.command()
def init(ctx: typer.Context) -> None:
    """Create the campaign database."""
    campaign = _app(ctx)
    campaign.get_repos()
    typer.echo(f"Initialized {campaign.config['storage']['db_path']}")


@app.command("import-roster")
def import_roster(
    ctx: typer.Context,
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="Roster TOML file"),
) -> None:
    """Import digimon, tamers and evolution lines from a roster file."""
    counts = _app(ctx).import_roster(path)
    typer.echo(
        f"Imported {counts['digimon']} digimon, {counts['tamers']} tamers, "
        f"{counts['evolution_lines']} evolution lines"
    )


# -- Encounters --


@app.command("new-encounter")
def new_encounter(
    ctx: typer.Context,
    name: str = typer.Argument(...),
    description: str = typer.Option("", "--description", "-d"),
) -> None:
    """Create an empty encounter in the setup phase."""
    encounter = _app(ctx).get_dispatcher().create_encounter(name, description)
    typer.echo(encounter.id)


@app.command("list-encounters")
def list_encounters(ctx: typer.Context) -> None:
    """List stored encounters, newest first."""
    from digital_adventure.cli.encounter_display import EncounterDisplay

    EncounterDisplay().show_encounter_list(_app(ctx).get_repos()["encounter"].list_all())


@app.command()
def show(
    ctx: typer.Context,
    encounter_id: str = typer.Argument(...),
    log: int = typer.Option(10, "--log", help="Battle log entries to show (0 for all)"),
) -> None:
    """Show an encounter's participants, requests and battle log."""
    from digital_adventure.cli.encounter_display import EncounterDisplay
    from digital_adventure.engine.errors import EngineError

    display = EncounterDisplay()
    try:
        encounter = _app(ctx).get_dispatcher().load(encounter_id)
    except EngineError as e:
        display.show_error(e.reason)
        raise typer.Exit(code=1)
    display.show_encounter(encounter, log_limit=log)


@app.command()
def add(
    ctx: typer.Context,
    encounter_id: str = typer.Argument(...),
    entity_id: str = typer.Argument(..., help="Digimon or tamer id from the roster"),
    tamer: bool = typer.Option(False, "--tamer", help="The entity is a tamer"),
    enemy: Optional[bool] = typer.Option(None, "--enemy/--ally", help="Override the roster's side"),
    initiative: Optional[int] = typer.Option(None, "--initiative"),
) -> None:
    """Add a participant to an encounter."""
    _run(ctx, encounter_id, {
        "command": "add_participant",
        "participant_type": "tamer" if tamer else "digimon",
        "entity_id": entity_id,
        "is_enemy": enemy,
        "initiative": initiative,
    })


@app.command()
def initiative(ctx: typer.Context, encounter_id: str = typer.Argument(...)) -> None:
    """Roll initiative: tamers get requests, digimon roll automatically."""
    _run(ctx, encounter_id, {"command": "begin_initiative"})


@app.command()
def start(ctx: typer.Context, encounter_id: str = typer.Argument(...)) -> None:
    """Start combat in initiative order."""
    _run(ctx, encounter_id, {"command": "start_combat"})


@app.command("next")
def next_turn(ctx: typer.Context, encounter_id: str = typer.Argument(...)) -> None:
    """Advance to the next turn."""
    _run(ctx, encounter_id, {"command": "next_turn"})


@app.command()
def end(ctx: typer.Context, encounter_id: str = typer.Argument(...)) -> None:
    """End combat."""
    _run(ctx, encounter_id, {"command": "end_combat"})


# -- Combat --


@app.command()
def attack(
    ctx: typer.Context,
    encounter_id: str = typer.Argument(...),
    attacker_id: str = typer.Argument(...),
    target_id: str = typer.Argument(...),
    attack_id: str = typer.Argument(...),
    dice: str = typer.Option(..., "--dice", help="Accuracy dice, e.g. 5,2,6"),
    bolster: Optional[str] = typer.Option(None, "--bolster", help="damage-accuracy or bit-cpu"),
) -> None:
    """Declare an attack with client-rolled accuracy dice."""
    _run(ctx, encounter_id, {
        "command": "declare_attack",
        "attacker_id": attacker_id,
        "target_id": target_id,
        "attack_id": attack_id,
        "accuracy_dice": _parse_dice(dice),
        "bolster_type": bolster,
    })


@app.command("npc-attack")
def npc_attack(
    ctx: typer.Context,
    encounter_id: str = typer.Argument(...),
    attacker_id: str = typer.Argument(...),
    target_id: str = typer.Argument(...),
    attack_id: str = typer.Argument(...),
    dice: Optional[str] = typer.Option(None, "--dice", help="Accuracy dice; rolled if omitted"),
    dodge_dice: Optional[str] = typer.Option(None, "--dodge-dice", help="Dodge dice; rolled if omitted"),
) -> None:
    """Resolve a GM attack in one step."""
    _run(ctx, encounter_id, {
        "command": "npc_attack",
        "attacker_id": attacker_id,
        "target_id": target_id,
        "attack_id": attack_id,
        "accuracy_dice": _parse_dice(dice),
        "dodge_dice": _parse_dice(dodge_dice),
    })


@app.command("respond-dodge")
def respond_dodge(
    ctx: typer.Context,
    encounter_id: str = typer.Argument(...),
    request_id: str = typer.Argument(...),
    tamer_id: str = typer.Option(..., "--tamer", help="Responding tamer id"),
    dice: str = typer.Option(..., "--dice", help="Dodge dice, e.g. 5,1,6"),
) -> None:
    """Answer a dodge-roll request."""
    from digital_adventure.mechanics.dice import count_successes

    results = _parse_dice(dice) or []
    _run(ctx, encounter_id, {
        "command": "respond",
        "request_id": request_id,
        "tamer_id": tamer_id,
        "response": {
            "type": "dodge-rolled",
            "dodge_dice_pool": len(results),
            "dodge_dice_results": results,
            "dodge_successes": count_successes(results),
        },
    })


@app.command("respond-initiative")
def respond_initiative(
    ctx: typer.Context,
    encounter_id: str = typer.Argument(...),
    request_id: str = typer.Argument(...),
    tamer_id: str = typer.Option(..., "--tamer", help="Responding tamer id"),
    roll: int = typer.Option(..., "--roll", help="3d6 total"),
) -> None:
    """Answer an initiative-roll request."""
    _run(ctx, encounter_id, {
        "command": "respond",
        "request_id": request_id,
        "tamer_id": tamer_id,
        "response": {"type": "initiative-rolled", "initiative": roll, "initiative_roll": roll},
    })


@app.command()
def claim(
    ctx: typer.Context,
    encounter_id: str = typer.Argument(...),
    request_id: str = typer.Argument(...),
    interceptor_id: str = typer.Argument(...),
    tamer_id: str = typer.Option("GM", "--tamer", help="Claiming tamer id, or GM"),
) -> None:
    """Intercede: the interceptor takes the hit instead."""
    _run(ctx, encounter_id, {
        "command": "claim_intercede",
        "request_id": request_id,
        "interceptor_id": interceptor_id,
        "tamer_id": tamer_id,
    })


@app.command()
def skip(
    ctx: typer.Context,
    encounter_id: str = typer.Argument(...),
    request_id: str = typer.Argument(...),
    tamer_id: str = typer.Option("GM", "--tamer", help="Skipping tamer id, or GM"),
    opt_out: bool = typer.Option(False, "--opt-out", help="Never offer to protect this target again"),
) -> None:
    """Pass on an intercede offer."""
    _run(ctx, encounter_id, {
        "command": "skip_intercede",
        "request_id": request_id,
        "tamer_id": tamer_id,
        "opt_out": opt_out,
    })


# -- Orders and digivolution --


@app.command()
def direct(
    ctx: typer.Context,
    encounter_id: str = typer.Argument(...),
    tamer_id: str = typer.Argument(..., help="Tamer participant id"),
    target_id: str = typer.Argument(..., help="Digimon participant id"),
    bolster: bool = typer.Option(False, "--bolster"),
) -> None:
    """Direct a digimon, adding dice to its next roll."""
    _run(ctx, encounter_id, {
        "command": "direct",
        "tamer_id": tamer_id,
        "target_id": target_id,
        "bolstered": bolster,
    })


@app.command()
def order(
    ctx: typer.Context,
    encounter_id: str = typer.Argument(...),
    participant_id: str = typer.Argument(..., help="Tamer participant id"),
    order_name: str = typer.Argument(...),
    target_id: Optional[str] = typer.Option(None, "--target"),
) -> None:
    """Issue a special order."""
    _run(ctx, encounter_id, {
        "command": "special_order",
        "participant_id": participant_id,
        "order_name": order_name,
        "target_id": target_id,
    })


@app.command()
def digivolve(
    ctx: typer.Context,
    encounter_id: str = typer.Argument(...),
    participant_id: str = typer.Argument(...),
    stage_index: int = typer.Argument(..., help="Target index in the evolution chain"),
) -> None:
    """Digivolve or devolve along the evolution line."""
    _run(ctx, encounter_id, {
        "command": "digivolve",
        "participant_id": participant_id,
        "target_stage_index": stage_index,
    })


@app.command()
def stance(
    ctx: typer.Context,
    encounter_id: str = typer.Argument(...),
    participant_id: str = typer.Argument(...),
    new_stance: str = typer.Argument(..., metavar="STANCE", help="neutral, defensive, offensive, sniper or brave"),
) -> None:
    """Change a participant's stance."""
    _run(ctx, encounter_id, {
        "command": "set_stance",
        "participant_id": participant_id,
        "stance": new_stance,
    })


# -- Reports --


@app.command()
def report(
    ctx: typer.Context,
    encounter_id: str = typer.Argument(...),
    out: Optional[Path] = typer.Option(None, "--out", "-o", help="Write Markdown here instead of stdout"),
) -> None:
    """Export the battle log as a Markdown report."""
    from digital_adventure.engine.errors import EngineError
    from digital_adventure.reports.battle_report import render_report, write_report

    try:
        encounter = _app(ctx).get_dispatcher().load(encounter_id)
    except EngineError as e:
        typer.secho(f"Error: {e.reason}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
    if out is None:
        typer.echo(render_report(encounter))
    else:
        write_report(encounter, out)
        typer.echo(f"Wrote {out}")


if __name__ == "__main__":
    app()
