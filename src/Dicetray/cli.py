"""Command-line front end for a dice session.

Examples:
  dicetray roll --d6 2 --d20 1
  dicetray roll --d20 3 --seed 7 --json
  dicetray play
"""

from __future__ import annotations

import asyncio
import json

import click

from Dicetray.config import Settings, load_settings
from Dicetray.logging import setup_logging
from Dicetray.rules.types import DieKind, RollRecord
from Dicetray.schemas import DieView, RollRecordView, SessionView
from Dicetray.session import DiceSession

PLAY_HELP = (
    "commands: add d6|d20, remove N, roll N, roll all, reset, history, show, help, quit"
)


def _format_die(pos: int, view: DieView) -> str:
    face = "?" if view.is_rolling else str(view.value)
    mark = " *" if view.is_critical and not view.is_rolling else ""
    return f"[{pos}] {view.kind.value.upper()}: {face}{mark}"


def _format_record(rec: RollRecord | RollRecordView) -> str:
    outcome = rec.outcome
    stamp = rec.rolled_at.strftime("%H:%M:%S")
    suffix = f"  ({outcome.replace('_', ' ')})" if outcome else ""
    return f"{stamp}  {rec.kind.value.upper():>3} -> {rec.value}{suffix}"


def _echo_tray(view: SessionView) -> None:
    for pos, die in enumerate(view.dice, start=1):
        click.echo(_format_die(pos, die))


def _echo_history(view: SessionView) -> None:
    if not view.history:
        click.echo("no rolls yet")
        return
    for rec in view.history:
        click.echo(_format_record(rec))


def _session_kwargs(settings: Settings, seed: int | None, delay: float | None) -> dict:
    return {
        "seed": seed if seed is not None else settings.rng_seed,
        "delay": delay if delay is not None else settings.roll_delay_seconds,
    }


@click.group()
@click.pass_context
def cli(ctx: click.Context) -> None:
    """Roll virtual d6 and d20 dice."""
    settings = load_settings()
    setup_logging(settings)
    ctx.obj = settings


@cli.command("roll")
@click.option("--d6", "d6", type=click.IntRange(min=0), default=0, help="Number of d6 to roll.")
@click.option("--d20", "d20", type=click.IntRange(min=0), default=None, help="Number of d20 to roll.")
@click.option("--seed", type=int, default=None, help="Seed for reproducible rolls.")
@click.option("--delay", type=click.FloatRange(min=0), default=None, help="Roll delay in seconds.")
@click.option("--json", "as_json", is_flag=True, default=False, help="Print the session as JSON.")
@click.pass_obj
def roll_cmd(
    settings: Settings,
    d6: int,
    d20: int | None,
    seed: int | None,
    delay: float | None,
    as_json: bool,
) -> None:
    """Build a tray with the requested dice and roll them all."""
    if d20 is None:
        d20 = 0 if d6 else 1
    if d6 + d20 == 0:
        raise click.BadParameter("roll at least one die", param_hint="--d6/--d20")

    async def _run() -> SessionView:
        async with DiceSession(**_session_kwargs(settings, seed, delay)) as session:
            # A fresh session starts with one d20; reuse it as the first d20 or swap it out.
            starter = session.dice[0]
            for _ in range(d20 - 1 if d20 else 0):
                session.add_die(DieKind.D20)
            for _ in range(d6):
                session.add_die(DieKind.D6)
            if d20 == 0:
                session.remove_die(starter.id)
            task = session.roll_all()
            if task is not None:
                await task
            return session.snapshot()

    view = asyncio.run(_run())
    if as_json:
        click.echo(json.dumps(view.model_dump(mode="json"), indent=2))
        return
    _echo_tray(view)
    crits = sum(1 for r in view.history if r.is_critical)
    total = sum(d.value for d in view.dice)
    click.echo(f"total: {total}  criticals: {crits}")


async def _play(session: DiceSession) -> None:
    click.echo(PLAY_HELP)
    _echo_tray(session.snapshot())
    while True:
        try:
            line = click.prompt("dice", prompt_suffix="> ", default="", show_default=False)
        except click.Abort:
            break
        words = line.strip().lower().split()
        if not words:
            continue
        cmd, args = words[0], words[1:]
        if cmd in ("quit", "exit", "q"):
            break
        if cmd == "help":
            click.echo(PLAY_HELP)
            continue
        if cmd == "show":
            _echo_tray(session.snapshot())
            continue
        if cmd == "history":
            _echo_history(session.snapshot())
            continue
        if cmd == "reset":
            session.reset_to_default()
            _echo_tray(session.snapshot())
            continue
        if cmd == "add" and len(args) == 1:
            try:
                session.add_die(args[0])
            except ValueError as exc:
                click.echo(str(exc))
                continue
            _echo_tray(session.snapshot())
            continue
        if cmd == "roll" and args == ["all"]:
            task = session.roll_all()
            if task is not None:
                for rec in await task:
                    click.echo(_format_record(rec))
            continue
        if cmd in ("roll", "remove") and len(args) == 1 and args[0].isdigit():
            pos = int(args[0])
            dice = session.dice
            if not 1 <= pos <= len(dice):
                click.echo(f"no die at position {pos}")
                continue
            die_id = dice[pos - 1].id
            if cmd == "remove":
                if not session.remove_die(die_id):
                    click.echo("the last die stays on the table")
                _echo_tray(session.snapshot())
                continue
            one = session.roll_one(die_id)
            if one is not None:
                click.echo(_format_record(await one))
            continue
        click.echo(f"unknown command: {line.strip()}")
        click.echo(PLAY_HELP)


@cli.command("play")
@click.option("--seed", type=int, default=None, help="Seed for reproducible rolls.")
@click.option("--delay", type=click.FloatRange(min=0), default=None, help="Roll delay in seconds.")
@click.pass_obj
def play_cmd(settings: Settings, seed: int | None, delay: float | None) -> None:
    """Interactive dice tray."""

    async def _run() -> None:
        async with DiceSession(**_session_kwargs(settings, seed, delay)) as session:
            await _play(session)

    asyncio.run(_run())


def main() -> None:  # pragma: no cover
    cli()


if __name__ == "__main__":  # pragma: no cover
    main()
