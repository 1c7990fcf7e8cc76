import pytest
from unittest.mock import patch
from pytest_bdd import scenarios, given, when, parsers
from ebikecrm.cli.main import cli

scenarios("features/catalog.feature")


@pytest.fixture
def inventory():
    """Rows served by the bikes table; the CRM engine runs for real on top."""
    rows = []
    with patch("ebikecrm.engine.crm.bikes_table") as table:
        table.select.return_value = rows
        yield rows


def _bike_row(inventory, model, price, status):
    return {
        "id": len(inventory) + 1, "model": model, "price": price, "range_km": "40 km",
        "load_capacity": "120 kg", "battery": None, "license_required": "no",
        "notes": None, "photo_1": None, "photo_2": None, "photo_3": None,
        "video": None, "status": status,
    }


@given(parsers.parse('a bike "{model}" priced "{price}" with status "{status}"'))
def priced_bike(inventory, model, price, status):
    inventory.append(_bike_row(inventory, model, price, status))


@given(parsers.parse('a bike "{model}" without a price with status "{status}"'))
def unpriced_bike(inventory, model, status):
    inventory.append(_bike_row(inventory, model, None, status))


@when("a visitor opens the catalog")
def open_catalog(runner, context):
    context["result"] = runner.invoke(cli, ["catalog"])


@when("the seller lists all bikes")
def list_all_bikes(runner, context):
    context["result"] = runner.invoke(cli, ["bikes", "list"])
