"""
app/cli.py — `flask settle`: print the settle-up plan for a snapshot file.

Usage (from the project root):
  flask --app tripsplit.app settle trip.json
  flask --app tripsplit.app settle trip.json --me p-alice

The file holds the same JSON object POST /api/v1/settlements/compute
accepts: {"participants": [...], "expenses": [...]}.
"""

from __future__ import annotations

import json

import click
from marshmallow import ValidationError
from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.theme import Theme

from tripsplit.app.errors import AppError
from tripsplit.app.models.transfer import TransferDirection
from tripsplit.app.schemas.settlement_schema import ComputeSettlementSchema
from tripsplit.app.services import balance_service, split_service


THEME = Theme({
    "hdr":     "bold bright_white",
    "muted":   "bright_black",
    "good":    "bright_green",
    "warn":    "bright_yellow",
    "bad":     "bright_red",
    "border":  "bright_black",
})

_DIRECTION_STYLE = {
    TransferDirection.PAYS.value:     "bad",
    TransferDirection.RECEIVES.value: "good",
    TransferDirection.NONE.value:     "",
}


def _balances_table(rows: list[dict]) -> Table:
    tbl = Table(
        title="[hdr]Balances[/]",
        box=box.ROUNDED, border_style="border",
    )
    tbl.add_column("Participant", overflow="fold")
    tbl.add_column("Paid",  justify="right")
    tbl.add_column("Share", justify="right")
    tbl.add_column("Net",   justify="right")

    for row in rows:
        net = row["net_balance"]
        style = "bad" if net.startswith("-") else ("good" if net != "0.00" else "muted")
        tbl.add_row(
            escape(row["display_name"]),
            row["total_paid_out"],
            row["total_debt"],
            f"[{style}]{net}[/]",
        )
    return tbl


def _transfers_table(transfers: list[dict]) -> Table:
    tbl = Table(
        title="[hdr]How to settle up[/]",
        box=box.ROUNDED, border_style="border",
    )
    tbl.add_column("From", overflow="fold")
    tbl.add_column("")
    tbl.add_column("To", overflow="fold")
    tbl.add_column("Amount", justify="right")

    for t in transfers:
        tbl.add_row(
            escape(t["from_name"]),
            "[muted]owes →[/]",
            escape(t["to_name"]),
            f"${t['amount']}",
            style=_DIRECTION_STYLE[t["direction"]] or None,
        )
    return tbl


def _load_snapshot(path: str) -> dict:
    try:
        with open(path, encoding="utf-8") as fh:
            raw = json.load(fh)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise click.ClickException(f"{path} is not valid JSON: {e}") from e

    if not isinstance(raw, dict):
        raise click.ClickException(f"{path} must contain a JSON object.")

    try:
        return ComputeSettlementSchema().load(raw)
    except ValidationError as e:
        from tripsplit.app import validation_error_body

        error = validation_error_body(e)["error"]
        where = f" ({error['field']})" if "field" in error else ""
        raise click.ClickException(f"{error['code']}{where}: {error['message']}") from e


@click.command("settle")
@click.argument("snapshot", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--me", "current_participant_id", default=None,
    help="Participant id to highlight: red when paying, green when receiving.",
)
def settle_command(snapshot: str, current_participant_id: str | None) -> None:
    """Print balances and the settle-up transfers for SNAPSHOT."""
    data = _load_snapshot(snapshot)
    if current_participant_id is None:
        current_participant_id = data["current_participant_id"]

    try:
        participants = split_service.build_participants(data["participants"])
        expenses = split_service.build_expenses(data["expenses"])
    except AppError as e:
        raise click.ClickException(f"{e.code}: {e.message}") from e

    result, warnings = balance_service.get_settlement_response(
        participants,
        expenses,
        current_participant_id=current_participant_id,
    )

    console = Console(theme=THEME, highlight=False)

    for warning in warnings:
        console.print(f"[warn]⚠ {warning['code']}[/] [muted]{escape(warning['message'])}[/]")

    if result["balances"]:
        console.print(_balances_table(result["balances"]))

    if result["settled"]:
        console.print(Panel(
            "[good]All settled up![/]\n[muted]No one owes anything.[/]",
            box=box.ROUNDED, border_style="border", expand=False,
        ))
        return

    console.print(_transfers_table(result["transfers"]))
