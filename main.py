#!/usr/bin/env python3
"""
E-Bike CRM - shop counter menu

Numbered menu over the ebikecrm commands, for staff who would rather not
type CLI options. Each choice runs the real command in a child process, so a
failing command drops back to the menu instead of ending the session.

Usage:
    python main.py
"""

import os
import subprocess
import sys
from pathlib import Path

import click

ROOT = Path(__file__).resolve().parent
COMMAND = [sys.executable, str(ROOT / "ebikecrm" / "cli" / "main.py")]

STAGES = ["Initial Contact", "Catalog Sent", "Questions", "Qualified"]
PERIODS = ["day", "month", "year"]


def run(*args: str, options=()):
    """Run one ebikecrm command, then wait for the operator."""
    argv = list(args)
    for flag, value in options:
        if value:
            argv += [flag, value]

    env = dict(os.environ, PYTHONPATH=str(ROOT))
    click.echo()
    subprocess.run(COMMAND + argv, env=env)
    click.echo()
    click.pause("  Press any key to return to the menu...")


def ask(label: str) -> str:
    return click.prompt(f"  {label}").strip()


def ask_optional(label: str) -> str:
    return click.prompt(f"  {label} (Enter to skip)", default="", show_default=False).strip()


def ask_choice(label: str, options) -> str:
    """Pick from a numbered list; returns the chosen text."""
    for n, option in enumerate(options, 1):
        click.echo(f"  {n}. {option}")
    n = click.prompt(f"  {label}", type=click.IntRange(1, len(options)))
    return options[n - 1]


# =============================================================================
# MENU ACTIONS
# =============================================================================

def contacts_board():
    run("contacts", "board")


def contacts_list():
    run("contacts", "list", options=[("--stage", ask_optional("Only stage (exact name)"))])


def contacts_show():
    run("contacts", "show", ask("Contact ID"))


def contacts_add():
    run("contacts", "add")


def contacts_move():
    contact_id = ask("Contact ID")
    run("contacts", "move", contact_id, ask_choice("New stage", STAGES))


def contacts_edit():
    contact_id = ask("Contact ID")
    run("contacts", "edit", contact_id, options=[
        ("--name", ask_optional("New name")),
        ("--phone", ask_optional("New phone")),
        ("--model", ask_optional("New model of interest")),
        ("--summary", ask_optional("New summary")),
        ("--pause-ai", ask_optional("Pause AI assistant (yes/no)")),
    ])


def bikes_list():
    run("bikes", "list", options=[("--status", ask_optional("Status filter (all/available/exact)"))])


def bikes_show():
    run("bikes", "show", ask("Bike ID"))


def bikes_add():
    run("bikes", "add")


def bikes_edit():
    bike_id = ask("Bike ID")
    run("bikes", "edit", bike_id, options=[
        ("--price", ask_optional("New price")),
        ("--status", ask_optional("New status (Available/Sold)")),
        ("--notes", ask_optional("New notes")),
    ])


def bikes_delete():
    run("bikes", "delete", ask("Bike ID"))


def catalog():
    run("catalog")


def sales_list():
    run("sales", "list", options=[
        ("--from", ask_optional("From date (DD/MM/YYYY)")),
        ("--to", ask_optional("To date (DD/MM/YYYY)")),
    ])


def sales_add():
    run("sales", "add")


def dashboard():
    run("dashboard", options=[
        ("--period", ask_choice("Period", PERIODS)),
        ("--date", ask_optional("Any date inside the period (DD/MM/YYYY)")),
    ])


MENU = [
    ("LEADS", [
        ("Kanban board", contacts_board),
        ("List contacts", contacts_list),
        ("Contact details", contacts_show),
        ("New contact", contacts_add),
        ("Move contact to another stage", contacts_move),
        ("Edit contact", contacts_edit),
    ]),
    ("INVENTORY", [
        ("List bikes", bikes_list),
        ("Bike details", bikes_show),
        ("Add bike", bikes_add),
        ("Edit bike", bikes_edit),
        ("Delete bike", bikes_delete),
        ("Public catalog", catalog),
    ]),
    ("SALES", [
        ("List sales", sales_list),
        ("Record a sale", sales_add),
        ("Dashboard", dashboard),
    ]),
]


def number_actions(menu):
    """Flatten the sections into {display number: action}."""
    actions = [action for _, entries in menu for _, action in entries]
    return dict(enumerate(actions, 1))


def show_menu(menu):
    click.clear()
    click.secho("E-BIKE CRM", bold=True)
    n = 1
    for section, entries in menu:
        click.echo(f"\n  {section}")
        for label, _ in entries:
            click.echo(f"  {n:>2}. {label}")
            n += 1
    click.echo("\n   0. Exit")


def main():
    actions = number_actions(MENU)
    while True:
        show_menu(MENU)
        try:
            choice = click.prompt("\n  Choice", default="", show_default=False).strip().lower()
        except click.Abort:
            break

        if choice in ("0", "q", "quit", "exit"):
            break
        if choice.isdigit() and int(choice) in actions:
            click.clear()
            try:
                actions[int(choice)]()
            except click.Abort:
                continue
        else:
            click.echo(f"\n  Not a menu number: {choice or '(empty)'}")
            click.pause("  Press any key to continue...")

    click.echo("\n  Goodbye!\n")


if __name__ == "__main__":
    main()
