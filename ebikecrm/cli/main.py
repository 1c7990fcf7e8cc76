#!/usr/bin/env python3
"""
E-Bike CRM Terminal CLI
Command-line interface for the contacts board, inventory, catalog, sales and dashboard.
"""

import functools
import logging
import click
from datetime import date, datetime
from typing import Optional

from ebikecrm.engine import crm
from ebikecrm.engine.dashboard import build_dashboard
from ebikecrm.engine.formatters import (
    date_literal, format_brl, format_cpf, format_currency, format_date, format_phone, parse_amount,
)
from ebikecrm.engine.sales import filter_sales, summarize_sales
from ebikecrm.engine.stages import PERIOD_MODES, group_by_stage
from ebikecrm.engine.validators import ValidationError, is_valid_cpf, is_valid_phone
from ebikecrm.db.connection import GatewayError
from ebikecrm.models import Bike, Contact, MaritalStatus, Sale, Stage
from ebikecrm.logging_config import configure_logging, log_call

STAGE_CHOICES = [s.value for s in Stage]
DATE_FORMATS = ['%d/%m/%Y', '%Y-%m-%d']


def _parse_input_date(raw: str) -> Optional[date]:
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(raw, fmt).date()
        except ValueError:
            continue
    return None


@log_call
def _prompt_date(label: str, default: Optional[date] = None) -> Optional[date]:
    """Prompt for a date, re-prompting on bad format. Returns None if left blank."""
    logger = logging.getLogger("ebikecrm")
    default_str = default.strftime('%d/%m/%Y') if default else ""
    while True:
        raw = click.prompt(label, default=default_str, show_default=bool(default_str)) or ""
        if not raw:
            return None
        parsed = _parse_input_date(raw.strip())
        if parsed:
            return parsed
        logger.debug(f"_prompt_date | rejected input={raw!r}")
        click.echo("  Invalid format — please use DD/MM/YYYY.", err=True)


@log_call
def _prompt_phone(label: str = "Phone") -> str:
    """Prompt for a 10 or 11 digit phone number, re-prompting until valid."""
    logger = logging.getLogger("ebikecrm")
    while True:
        raw = click.prompt(label, type=str)
        if is_valid_phone(raw):
            return raw
        logger.debug("_prompt_phone | rejected input")
        click.echo("  Invalid phone — use (00) 00000-0000.", err=True)


@log_call
def _prompt_cpf() -> Optional[str]:
    """Prompt for a CPF, re-prompting on a bad check digit. Returns None if left blank."""
    logger = logging.getLogger("ebikecrm")
    while True:
        raw = click.prompt("CPF", default="", show_default=False) or None
        if raw is None:
            return None
        if is_valid_cpf(raw):
            return format_cpf(raw)
        logger.debug("_prompt_cpf | rejected input")
        click.echo("  Invalid CPF — please try again or press Enter to skip.", err=True)


def _handle_errors(func):
    """Report rejected submissions and store failures without a traceback."""
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        logger = logging.getLogger("ebikecrm")
        try:
            return func(*args, **kwargs)
        except ValidationError as e:
            logger.warning(f"{func.__name__} | {e}")
            click.echo("Not saved — please fix the following:", err=True)
            for error in e.errors:
                click.echo(f"  • {error}", err=True)
            raise click.exceptions.Exit(1)
        except GatewayError as e:
            logger.error(f"{func.__name__} | database error: {e}", exc_info=True)
            click.echo(f"Database error: {e}", err=True)
            raise click.exceptions.Exit(1)
    return wrapper


@click.group()
def cli():
    """E-Bike CRM - Leads, Inventory & Sales"""
    configure_logging()


# =============================================================================
# CONTACTS COMMANDS
# =============================================================================

@cli.group()
def contacts():
    """Manage leads on the CRM board"""
    pass


@contacts.command('board')
@log_call
@_handle_errors
def contacts_board():
    """Show the kanban board, one column per stage"""
    columns = group_by_stage(crm.list_contacts())

    click.echo()
    click.echo("   ".join(f"{stage.value}: {len(members)}" for stage, members in columns.items()))

    for stage, members in columns.items():
        click.echo(f"\n{'='*60}")
        click.echo(f"{stage.value.upper()} ({len(members)})")
        click.echo(f"{'='*60}")
        if not members:
            click.echo("  (empty)")
            continue
        for c in members:
            click.echo(
                f"  #{c.id:<5} {(c.name or 'No name')[:28]:<30} "
                f"{format_phone(c.phone or ''):<17} {format_date(c.created_on) or ''}"
            )
    click.echo()


@contacts.command('list')
@click.option('--stage', type=click.Choice(STAGE_CHOICES), help='Only contacts in this stage')
@log_call
@_handle_errors
def contacts_list(stage):
    """List all contacts, newest first"""
    results = crm.list_contacts()
    if stage:
        results = [c for c in results if c.stage == stage]

    if not results:
        click.echo("No contacts found.")
        return

    click.echo(f"\nFound {len(results)} contacts:\n")
    click.echo(f"{'ID':<6} {'Name':<30} {'Phone':<17} {'Stage':<16} {'Created':<10}")
    click.echo("-" * 82)

    for c in results:
        click.echo(
            f"{c.id:<6} {(c.name or '')[:28]:<30} {format_phone(c.phone or ''):<17} "
            f"{(c.stage or '-')[:15]:<16} {format_date(c.created_on) or '':<10}"
        )


@contacts.command('show')
@click.argument('contact_id', type=int)
@log_call
@_handle_errors
def contacts_show(contact_id):
    """Show full contact details"""
    logger = logging.getLogger("ebikecrm")
    contact = crm.get_contact(contact_id)

    if not contact:
        logger.warning(f"contacts_show | contact_id={contact_id} not found")
        click.echo(f"Contact ID {contact_id} not found.", err=True)
        return

    click.echo(f"\n{'='*60}")
    click.echo(f"CONTACT #{contact.id}: {contact.name or 'No name'}")
    click.echo(f"{'='*60}")
    click.echo(f"Full name:   {contact.full_name or '(not set)'}")
    click.echo(f"Phone:       {format_phone(contact.phone or '') or '(not set)'}")
    click.echo(f"CPF:         {format_cpf(contact.cpf) if contact.cpf else '(not set)'}")
    click.echo(f"Birth date:  {contact.birth_date or '(not set)'}")
    click.echo(f"Marital:     {contact.marital_status or '(not set)'}")
    click.echo(f"Profession:  {contact.profession or '(not set)'}")
    click.echo(f"Income:      {contact.monthly_income or '(not set)'}")
    click.echo(f"Interest:    {contact.model_of_interest or '(not set)'}")
    click.echo(f"Stage:       {contact.stage or '(none)'}")
    click.echo(f"AI paused:   {contact.ai_paused or '(not set)'}")
    click.echo(f"Created:     {format_date(contact.created_on) or '(unknown)'}")
    click.echo(f"\nSummary:\n{contact.summary or 'No summary available'}")
    click.echo()


@contacts.command('add')
@log_call
@_handle_errors
def contacts_add():
    """Add a new lead (interactive)"""
    click.echo("\n=== ADD NEW CONTACT ===\n")

    name = click.prompt("Name", type=str)
    phone = _prompt_phone()
    full_name = click.prompt("Full name", default="", show_default=False) or None
    cpf = _prompt_cpf()
    birth = _prompt_date("Birth date (DD/MM/YYYY, Enter to skip)")
    marital_status = click.prompt(
        "Marital status",
        type=click.Choice([''] + [m.value for m in MaritalStatus]),
        default="", show_default=False,
    ) or None
    profession = click.prompt("Profession", default="", show_default=False) or None
    monthly_income = click.prompt("Monthly income", default="", show_default=False) or None
    model_of_interest = click.prompt("Model of interest", default="", show_default=False) or None
    summary = click.prompt("Summary", default="", show_default=False) or None

    contact = Contact(
        name=name,
        phone=phone,
        full_name=full_name,
        cpf=cpf,
        birth_date=birth.strftime('%d/%m/%Y') if birth else None,
        marital_status=marital_status,
        profession=profession,
        monthly_income=monthly_income,
        model_of_interest=model_of_interest,
        stage=Stage.INITIAL_CONTACT.value,
        summary=summary,
    )

    contact_id = crm.create_contact(contact)
    click.echo(f"\n✓ Created contact #{contact_id}: {name}")


@contacts.command('edit')
@click.argument('contact_id', type=int)
@click.option('--name', help='Update display name')
@click.option('--phone', help='Update phone')
@click.option('--stage', type=click.Choice(STAGE_CHOICES), help='Update stage')
@click.option('--model', 'model_of_interest', help='Update model of interest')
@click.option('--summary', help='Update summary')
@click.option('--pause-ai', 'ai_paused', type=click.Choice(['yes', 'no']), help='Pause the AI assistant')
@log_call
@_handle_errors
def contacts_edit(contact_id, name, phone, stage, model_of_interest, summary, ai_paused):
    """Edit a contact (use options to set fields)"""
    logger = logging.getLogger("ebikecrm")
    updates = {
        key: value for key, value in (
            ('name', name),
            ('phone', phone),
            ('stage', stage),
            ('model_of_interest', model_of_interest),
            ('summary', summary),
            ('ai_paused', ai_paused),
        ) if value is not None
    }

    if not updates:
        click.echo("No updates specified. Use --name, --phone, --stage, --model, --summary or --pause-ai", err=True)
        return

    success = crm.update_contact(contact_id, updates)
    if success:
        click.echo(f"✓ Updated contact #{contact_id}")
    else:
        logger.warning(f"contacts_edit | contact_id={contact_id} not found")
        click.echo(f"Contact #{contact_id} not found", err=True)


@contacts.command('move')
@click.argument('contact_id', type=int)
@click.argument('stage', type=click.Choice(STAGE_CHOICES))
@log_call
@_handle_errors
def contacts_move(contact_id, stage):
    """Move a contact to another stage column"""
    logger = logging.getLogger("ebikecrm")
    if crm.move_contact_stage(contact_id, Stage(stage)):
        click.echo(f"✓ Contact #{contact_id} moved to {stage}")
    else:
        logger.warning(f"contacts_move | contact_id={contact_id} not found")
        click.echo(f"Contact #{contact_id} not found", err=True)


# =============================================================================
# BIKES COMMANDS
# =============================================================================

@cli.group()
def bikes():
    """Manage the bike inventory"""
    pass


def _echo_bike_table(results):
    click.echo(f"{'ID':<6} {'Model':<30} {'Price':<16} {'Range':<10} {'Status':<12}")
    click.echo("-" * 78)
    for b in results:
        click.echo(
            f"{b.id:<6} {b.model[:28]:<30} {format_currency(b.price)[:15]:<16} "
            f"{(b.range_km or '')[:9]:<10} {(b.status or '')[:12]:<12}"
        )


@bikes.command('list')
@click.option('--status', default='all',
              help="'all', 'available' (any spelling of Available/Disponível) or an exact status")
@log_call
@_handle_errors
def bikes_list(status):
    """List bikes sorted by model"""
    results = crm.list_bikes(status=status)

    if not results:
        click.echo("No bikes found.")
        return

    click.echo(f"\nFound {len(results)} bikes:\n")
    _echo_bike_table(results)


@bikes.command('show')
@click.argument('bike_id', type=int)
@log_call
@_handle_errors
def bikes_show(bike_id):
    """Show full bike details"""
    logger = logging.getLogger("ebikecrm")
    bike = crm.get_bike(bike_id)

    if not bike:
        logger.warning(f"bikes_show | bike_id={bike_id} not found")
        click.echo(f"Bike ID {bike_id} not found.", err=True)
        return

    click.echo(f"\n{'='*60}")
    click.echo(f"BIKE #{bike.id}: {bike.model}")
    click.echo(f"{'='*60}")
    click.echo(f"Price:       {format_currency(bike.price)}")
    click.echo(f"Range:       {bike.range_km or '(not set)'}")
    click.echo(f"Load:        {bike.load_capacity or '(not set)'}")
    click.echo(f"Battery:     {bike.battery or '(not set)'}")
    click.echo(f"License:     {'required' if bike.license_required == 'yes' else 'not required'}")
    click.echo(f"Status:      {bike.status}")
    for label, url in (('Photo 1', bike.photo_1), ('Photo 2', bike.photo_2),
                       ('Photo 3', bike.photo_3), ('Video', bike.video)):
        if url:
            click.echo(f"{label + ':':<13}{url}")
    if bike.notes:
        click.echo(f"\nNotes:\n{bike.notes}")
    click.echo()


@bikes.command('add')
@log_call
@_handle_errors
def bikes_add():
    """Add a bike to the inventory (interactive)"""
    click.echo("\n=== ADD NEW BIKE ===\n")

    model = click.prompt("Model", type=str)
    price = click.prompt("Price", type=str)
    range_km = click.prompt("Range", type=str)
    load_capacity = click.prompt("Load capacity", type=str)
    battery = click.prompt("Battery", default="", show_default=False) or None
    license_required = click.prompt("Driver's license required", type=click.Choice(['yes', 'no']), default="no")
    notes = click.prompt("Notes", default="", show_default=False) or None
    photo_1 = click.prompt("Photo URL", default="", show_default=False) or None
    video = click.prompt("Video URL", default="", show_default=False) or None
    status = click.prompt("Status", default="Available")

    bike = Bike(
        model=model,
        price=price,
        range_km=range_km,
        load_capacity=load_capacity,
        battery=battery,
        license_required=license_required,
        notes=notes,
        photo_1=photo_1,
        video=video,
        status=status,
    )

    bike_id = crm.create_bike(bike)
    click.echo(f"\n✓ Created bike #{bike_id}: {model}")


@bikes.command('edit')
@click.argument('bike_id', type=int)
@click.option('--model', help='Update model name')
@click.option('--price', help='Update price')
@click.option('--status', help='Update status (e.g. Available, Sold)')
@click.option('--notes', help='Update notes')
@click.option('--photo', 'photo_1', help='Update main photo URL')
@click.option('--video', help='Update video URL')
@log_call
@_handle_errors
def bikes_edit(bike_id, model, price, status, notes, photo_1, video):
    """Edit a bike (use options to set fields)"""
    logger = logging.getLogger("ebikecrm")
    updates = {
        key: value for key, value in (
            ('model', model),
            ('price', price),
            ('status', status),
            ('notes', notes),
            ('photo_1', photo_1),
            ('video', video),
        ) if value is not None
    }

    if not updates:
        click.echo("No updates specified. Use --model, --price, --status, --notes, --photo or --video", err=True)
        return

    if crm.update_bike(bike_id, updates):
        click.echo(f"✓ Updated bike #{bike_id}")
    else:
        logger.warning(f"bikes_edit | bike_id={bike_id} not found")
        click.echo(f"Bike #{bike_id} not found", err=True)


@bikes.command('delete')
@click.argument('bike_id', type=int)
@click.option('--yes', is_flag=True, help='Do not ask for confirmation')
@log_call
@_handle_errors
def bikes_delete(bike_id, yes):
    """Delete a bike from the inventory"""
    logger = logging.getLogger("ebikecrm")
    if not yes and not click.confirm(f"Delete bike #{bike_id}?"):
        click.echo("Cancelled.")
        return

    if crm.delete_bike(bike_id):
        click.echo(f"✓ Deleted bike #{bike_id}")
    else:
        logger.warning(f"bikes_delete | bike_id={bike_id} not found")
        click.echo(f"Bike #{bike_id} not found", err=True)


@cli.command('catalog')
@log_call
@_handle_errors
def catalog():
    """Public catalog of available bikes"""
    results = crm.list_catalog()

    if not results:
        click.echo("No bikes available in the catalog right now.")
        return

    click.echo(f"\n{len(results)} bikes available:\n")
    for b in results:
        click.echo(f"• {b.model} — {format_currency(b.price)}")
        details = [d for d in (b.range_km and f"range {b.range_km}",
                               b.load_capacity and f"carries {b.load_capacity}",
                               b.battery and f"battery {b.battery}") if d]
        if details:
            click.echo(f"  {', '.join(details)}")
        click.echo(f"  {'Driver license required' if b.license_required == 'yes' else 'No license required'}")
        if b.notes:
            click.echo(f"  {b.notes[:100]}")
    click.echo()


# =============================================================================
# SALES COMMANDS
# =============================================================================

@cli.group()
def sales():
    """Record and review sales"""
    pass


@sales.command('list')
@click.option('--from', 'date_from', type=click.DateTime(formats=DATE_FORMATS), help='First sale date')
@click.option('--to', 'date_to', type=click.DateTime(formats=DATE_FORMATS), help='Last sale date (inclusive)')
@log_call
@_handle_errors
def sales_list(date_from, date_to):
    """List sales with totals for the range"""
    start = date_from.date() if date_from else None
    end = date_to.date() if date_to else None

    selected = filter_sales(crm.list_sales(), start, end)
    summary = summarize_sales(selected)

    if not summary.total:
        click.echo("No sales found.")
        return

    click.echo(f"\n{summary.total} sales:\n")
    click.echo(f"{'ID':<6} {'Date':<11} {'Customer':<24} {'Bike':<22} {'Amount':<16} {'Fin.':<4}")
    click.echo("-" * 86)
    for s in selected:
        click.echo(
            f"{s.id:<6} {format_date(s.sale_date) or '':<11} {s.customer_name[:22]:<24} "
            f"{s.bike_model[:20]:<22} {format_brl(parse_amount(s.final_amount)):<16} "
            f"{'yes' if s.financed else 'no':<4}"
        )

    click.echo(f"\nRevenue:         {format_brl(summary.revenue)}")
    click.echo(f"Average ticket:  {format_brl(summary.average_ticket)}")
    click.echo(f"Financed:        {summary.financed_pct}%")
    click.echo()


@sales.command('add')
@log_call
@_handle_errors
def sales_add():
    """Record a sale (interactive)"""
    logger = logging.getLogger("ebikecrm")
    click.echo("\n=== RECORD SALE ===\n")

    customer_name = click.prompt("Customer name", type=str)
    customer_phone = _prompt_phone("Customer phone")

    bike_id = click.prompt("Bike ID", type=int)
    bike = crm.get_bike(bike_id)
    if not bike:
        logger.warning(f"sales_add | bike_id={bike_id} not found")
        click.echo(f"Bike ID {bike_id} not found.", err=True)
        return
    click.echo(f"  {bike.model} — {format_currency(bike.price)}")

    financed = click.confirm("Financed?", default=False)
    down_payment = click.prompt("Down payment", type=str) if financed else None
    final_amount = click.prompt("Final amount", type=str)
    sale_date = _prompt_date("Sale date", default=crm.today())

    sale = Sale(
        customer_name=customer_name,
        customer_phone=customer_phone,
        bike_id=bike.id,
        bike_model=bike.model,
        financed=financed,
        down_payment=down_payment,
        final_amount=final_amount,
        sale_date=date_literal(sale_date) if sale_date else None,
    )

    sale_id = crm.record_sale(sale)
    click.echo(f"\n✓ Recorded sale #{sale_id}: {bike.model} to {customer_name}")
    if crm.is_available(bike.status):
        click.echo(f"  Bike #{bike.id} is still listed as '{bike.status}'. "
                   f"Run: ebikecrm bikes edit {bike.id} --status Sold")


# =============================================================================
# DASHBOARD
# =============================================================================

@cli.command('dashboard')
@click.option('--period', type=click.Choice(PERIOD_MODES), default=None,
              help='day, month or year (default from DEFAULT_PERIOD)')
@click.option('--date', 'ref_date', type=click.DateTime(formats=DATE_FORMATS),
              help='Any date inside the period (default: today)')
@log_call
@_handle_errors
def dashboard(period, ref_date):
    """Lead and sales metrics for a day, month or year"""
    metrics = build_dashboard(mode=period, reference=ref_date.date() if ref_date else None)
    stages = metrics.stages

    click.echo(f"\n{'='*60}")
    click.echo(f"DASHBOARD — {metrics.mode} of {metrics.reference.strftime('%d/%m/%Y')}")
    click.echo(f"{stages.start.strftime('%d/%m/%Y')} to {stages.end.strftime('%d/%m/%Y')}")
    click.echo(f"{'='*60}")

    click.echo(f"\nLeads in period:     {stages.total}")
    for stage, count in stages.counts.items():
        click.echo(f"  {stage.value:<18} {count}")
    click.echo(f"Qualified rate:      {stages.qualified_rate}%")
    click.echo(f"Conversion rate:     {stages.conversion_rate}%")

    click.echo("\nLeads per day:")
    peak = max((d.leads for d in metrics.leads_by_day), default=0)
    for day in metrics.leads_by_day:
        bar = '█' * (round(day.leads / peak * 20) if peak else 0)
        click.echo(f"  {day.label}  {day.leads:>3} {bar}")

    click.echo(f"\nSales:               {metrics.sales.total}")
    click.echo(f"Revenue:             {format_brl(metrics.sales.revenue)}")
    click.echo(f"Average ticket:      {format_brl(metrics.sales.average_ticket)}")
    click.echo(f"Financed:            {metrics.sales.financed_pct}%")
    click.echo(f"Sales per qualified: {metrics.sales_conversion_rate}%")
    click.echo()


# =============================================================================
# MAIN
# =============================================================================

if __name__ == '__main__':
    cli()
