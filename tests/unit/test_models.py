"""
Unit tests for data models (ebikecrm/models/__init__.py).
Pure Python — no DB, no mocking required.
"""

import pytest

from ebikecrm.models import Bike, Contact, MaritalStatus, Sale, Stage, YES_NO


# ---------------------------------------------------------------------------
# Stage
# ---------------------------------------------------------------------------

def test_stage_board_order():
    assert [s.value for s in Stage] == ['Initial Contact', 'Catalog Sent', 'Questions', 'Qualified']


def test_stage_compares_equal_to_stored_text():
    assert Stage.QUALIFIED == 'Qualified'


@pytest.mark.parametrize("text, expected", [
    ('Initial Contact', Stage.INITIAL_CONTACT),
    ('Qualified', Stage.QUALIFIED),
    ('qualified', None),
    ('Qualified ', None),
    ('', None),
    (None, None),
])
def test_stage_from_value_is_exact(text, expected):
    assert Stage.from_value(text) is expected


def test_marital_status_values():
    assert [m.value for m in MaritalStatus] == ['Single', 'Married', 'Divorced', 'Widowed']


def test_yes_no():
    assert YES_NO == ('yes', 'no')


# ---------------------------------------------------------------------------
# Contact
# ---------------------------------------------------------------------------

def test_contact_default_stage():
    assert Contact(name='Ana').stage == 'Initial Contact'


def test_contact_name_and_phone_default_to_empty_string():
    c = Contact()
    assert c.name == ''
    assert c.phone == ''


def test_contact_optional_fields_default_to_none():
    c = Contact()
    for field in ('id', 'full_name', 'cpf', 'birth_date', 'marital_status', 'profession',
                  'monthly_income', 'model_of_interest', 'summary', 'ai_paused', 'created_on'):
        assert getattr(c, field) is None, f"Expected {field} to be None"


# ---------------------------------------------------------------------------
# Bike
# ---------------------------------------------------------------------------

def test_bike_defaults():
    b = Bike(model='Urban 350')
    assert b.status == 'Available'
    assert b.license_required == 'no'
    assert b.price is None
    assert b.photo_1 is None and b.video is None


# ---------------------------------------------------------------------------
# Sale
# ---------------------------------------------------------------------------

def test_sale_defaults():
    s = Sale()
    assert s.financed is False
    assert s.bike_id is None
    assert s.down_payment is None
    assert s.final_amount == ''
    assert s.created_at is None


def test_sale_equality_is_by_value():
    a = Sale(customer_name='Carlos', bike_id=3, final_amount='8500,00')
    b = Sale(customer_name='Carlos', bike_id=3, final_amount='8500,00')
    assert a == b
