"""
CRM Engine - Screen Operations
Contacts board, bike inventory, public catalog and sales ledger on top of the
table gateway. Reads always re-fetch; writes validate, then persist, then emit
a bus event.
"""

import logging
import re
import unicodedata
from dataclasses import asdict, fields
from datetime import date, datetime
from typing import Any, Dict, List, Optional
from zoneinfo import ZoneInfo

from ebikecrm.config import config
from ebikecrm.db.gateway import contacts_table, bikes_table, sales_table
from ebikecrm.engine.formatters import date_literal, normalize_amount, parse_date
from ebikecrm.engine.validators import (
    ValidationError,
    BIKE_TEXT_FIELDS,
    CONTACT_TEXT_FIELDS,
    SALE_TEXT_FIELDS,
    sanitize_record,
    validate_bike,
    validate_contact,
    validate_sale,
)
from ebikecrm.models import Bike, Contact, Sale, Stage
from ebikecrm.bus.events import (
    bus,
    EVENT_CONTACT_CREATED, EVENT_CONTACT_UPDATED, EVENT_CONTACT_STAGE_CHANGED,
    EVENT_BIKE_CREATED, EVENT_BIKE_UPDATED, EVENT_BIKE_DELETED,
    EVENT_SALE_RECORDED,
)

logger = logging.getLogger(__name__)

# Matched against the lower-case, accent-free status. 'dispon' anywhere covers the
# legacy Portuguese 'Disponível' and its misspellings; the English word only
# counts when the status starts with it, so 'Unavailable' stays out.
AVAILABLE_STATUS_RE = re.compile(r'dispon|^\s*available\b')


def today() -> date:
    """Current date in the shop's timezone."""
    return datetime.now(ZoneInfo(config.TIMEZONE)).date()


def _from_row(cls, row: Dict[str, Any]):
    """Build a dataclass from a row, ignoring columns the model doesn't know."""
    known = {f.name for f in fields(cls)}
    return cls(**{k: v for k, v in row.items() if k in known})


def _blank_to_none(data: Dict[str, Any]) -> Dict[str, Any]:
    return {k: (None if isinstance(v, str) and not v.strip() else v) for k, v in data.items()}


# =============================================================================
# CONTACTS
# =============================================================================

def list_contacts() -> List[Contact]:
    """
    All contacts, newest first. created_on is text, so ordering happens here
    on the parsed date; rows with an unreadable date go last.
    """
    rows = contacts_table.select()
    contacts = [_from_row(Contact, row) for row in rows]
    contacts.sort(key=lambda c: parse_date(c.created_on) or date.min, reverse=True)
    logger.debug(f"list_contacts: {len(contacts)} contacts")
    return contacts


def get_contact(contact_id: int) -> Optional[Contact]:
    rows = contacts_table.select({'id': contact_id})
    if rows:
        return _from_row(Contact, rows[0])
    logger.debug(f"get_contact: contact_id={contact_id} not found")
    return None


def create_contact(contact: Contact) -> int:
    """
    Validate and store a new lead. created_on is set to today's 'DD-MM-YYYY';
    a contact without a stage starts at Initial Contact.
    Returns: contact_id
    """
    data = asdict(contact)
    data.pop('id')
    data = sanitize_record(data, CONTACT_TEXT_FIELDS)
    if isinstance(data.get('stage'), Stage):
        data['stage'] = data['stage'].value
    if not data.get('stage'):
        data['stage'] = Stage.INITIAL_CONTACT.value
    data['created_on'] = date_literal(today())

    errors = validate_contact(data)
    if errors:
        logger.warning(f"create_contact rejected: {errors}")
        raise ValidationError('contact', errors)

    row = contacts_table.insert(_blank_to_none(data))
    contact_id = row['id']
    logger.info(f"Created contact ID {contact_id}: {data['name']}")

    bus.emit(EVENT_CONTACT_CREATED, {'contact_id': contact_id, 'contact': _from_row(Contact, row)})
    return contact_id


def update_contact(contact_id: int, updates: Dict[str, Any]) -> bool:
    """
    Edit selected contact fields.
    Returns: True if updated, False if not found or nothing to change
    """
    if not updates:
        return False

    updates = sanitize_record(updates, CONTACT_TEXT_FIELDS)
    if isinstance(updates.get('stage'), Stage):
        updates['stage'] = updates['stage'].value
    if 'created_on' in updates or 'id' in updates:
        raise ValueError("created_on and id cannot be edited")

    errors = validate_contact(updates, partial=True)
    if errors:
        logger.warning(f"update_contact {contact_id} rejected: {errors}")
        raise ValidationError('contact', errors)

    count = contacts_table.update(_blank_to_none(updates), {'id': contact_id})
    if count > 0:
        logger.info(f"Updated contact ID {contact_id}: {sorted(updates.keys())}")
        bus.emit(EVENT_CONTACT_UPDATED, {'contact_id': contact_id, 'updates': updates})
        return True
    return False


def move_contact_stage(contact_id: int, stage: Stage) -> bool:
    """Move a card to another board column."""
    if not isinstance(stage, Stage):
        raise ValueError(f"Unknown stage: {stage!r}")

    count = contacts_table.update({'stage': stage.value}, {'id': contact_id})
    if count > 0:
        logger.info(f"Moved contact ID {contact_id} to {stage.value}")
        bus.emit(EVENT_CONTACT_STAGE_CHANGED, {'contact_id': contact_id, 'stage': stage})
        return True
    return False


# =============================================================================
# BIKES
# =============================================================================

def is_available(status: Optional[str]) -> bool:
    """Tolerant status match, insensitive to case and accents."""
    if not status:
        return False
    decomposed = unicodedata.normalize('NFKD', status)
    plain = ''.join(ch for ch in decomposed if not unicodedata.combining(ch)).casefold()
    return AVAILABLE_STATUS_RE.search(plain) is not None


def list_bikes(status: str = 'all') -> List[Bike]:
    """
    Inventory sorted by model.
      'all'       -> every bike
      'available' -> tolerant match (see is_available)
      other text  -> exact status match
    """
    bikes = [_from_row(Bike, row) for row in bikes_table.select(order='model')]
    if status == 'all':
        return bikes
    if status == 'available':
        return [b for b in bikes if is_available(b.status)]
    return [b for b in bikes if b.status == status]


def list_catalog() -> List[Bike]:
    """Public catalog: available bikes only."""
    return list_bikes('available')


def get_bike(bike_id: int) -> Optional[Bike]:
    rows = bikes_table.select({'id': bike_id})
    if rows:
        return _from_row(Bike, rows[0])
    logger.debug(f"get_bike: bike_id={bike_id} not found")
    return None


def create_bike(bike: Bike) -> int:
    """Validate and store a bike. Returns: bike_id"""
    data = asdict(bike)
    data.pop('id')
    data = sanitize_record(data, BIKE_TEXT_FIELDS)

    errors = validate_bike(data)
    if errors:
        logger.warning(f"create_bike rejected: {errors}")
        raise ValidationError('bike', errors)

    row = bikes_table.insert(_blank_to_none(data))
    bike_id = row['id']
    logger.info(f"Created bike ID {bike_id}: {data['model']}")

    bus.emit(EVENT_BIKE_CREATED, {'bike_id': bike_id, 'bike': _from_row(Bike, row)})
    return bike_id


def update_bike(bike_id: int, updates: Dict[str, Any]) -> bool:
    """Edit selected bike fields. Marking a bike sold is one of these edits."""
    if not updates:
        return False

    updates = sanitize_record(updates, BIKE_TEXT_FIELDS)
    errors = validate_bike(updates, partial=True)
    if errors:
        logger.warning(f"update_bike {bike_id} rejected: {errors}")
        raise ValidationError('bike', errors)

    count = bikes_table.update(_blank_to_none(updates), {'id': bike_id})
    if count > 0:
        logger.info(f"Updated bike ID {bike_id}: {sorted(updates.keys())}")
        bus.emit(EVENT_BIKE_UPDATED, {'bike_id': bike_id, 'updates': updates})
        return True
    return False


def delete_bike(bike_id: int) -> bool:
    """Hard delete. Sales keep their bike_model copy."""
    count = bikes_table.delete({'id': bike_id})
    if count > 0:
        logger.info(f"Deleted bike ID {bike_id}")
        bus.emit(EVENT_BIKE_DELETED, {'bike_id': bike_id})
        return True
    return False


# =============================================================================
# SALES
# =============================================================================

def list_sales() -> List[Sale]:
    """Ledger, most recently recorded first."""
    rows = sales_table.select(order='created_at', descending=True)
    return [_from_row(Sale, row) for row in rows]


def record_sale(sale: Sale) -> int:
    """
    Validate and store a sale.

    Amounts are stored without symbols or thousands separators. bike_model is
    copied from the bike when left blank; sale_date defaults to today. The
    bike's own status is not touched.
    Returns: sale_id
    """
    data = asdict(sale)
    data.pop('id')
    data.pop('created_at')
    data = sanitize_record(data, SALE_TEXT_FIELDS)

    if not data.get('bike_model') and isinstance(data.get('bike_id'), int):
        bike = get_bike(data['bike_id'])
        if bike is not None:
            data['bike_model'] = bike.model

    errors = validate_sale(data)
    if errors:
        logger.warning(f"record_sale rejected: {errors}")
        raise ValidationError('sale', errors)

    data['final_amount'] = normalize_amount(data['final_amount'])
    data['down_payment'] = normalize_amount(data['down_payment']) if data['financed'] else None
    sold_on = parse_date(data.get('sale_date'))
    data['sale_date'] = date_literal(sold_on or today())

    row = sales_table.insert(_blank_to_none(data))
    sale_id = row['id']
    logger.info(f"Recorded sale ID {sale_id}: bike {data['bike_id']} ({data['bike_model']})")

    bus.emit(EVENT_SALE_RECORDED, {'sale_id': sale_id, 'sale': _from_row(Sale, row)})
    return sale_id
