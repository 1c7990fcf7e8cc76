"""
Record Validators
Field checks for contact, bike and sale submissions.

Each validate_* function returns a list of "<field>: <message>" strings and
never raises; an empty list means the record may be written. The CRM engine
turns a non-empty list into a ValidationError.
"""

import re
from typing import Any, Dict, Iterable, List, Mapping
from urllib.parse import urlparse

from ebikecrm.engine.formatters import only_digits, parse_date
from ebikecrm.models import MaritalStatus, Stage, YES_NO

_BIRTH_DATE_RE = re.compile(r'^\d{2}/\d{2}/\d{4}$')

# Free-text fields passed through sanitize_input before they are stored
CONTACT_TEXT_FIELDS = (
    'name', 'full_name', 'profession', 'monthly_income',
    'model_of_interest', 'summary',
)
BIKE_TEXT_FIELDS = ('model', 'price', 'range_km', 'load_capacity', 'battery', 'notes', 'status')
SALE_TEXT_FIELDS = ('customer_name', 'bike_model')


class ValidationError(ValueError):
    """A submission failed one or more field checks. Nothing was written."""

    def __init__(self, entity: str, errors: List[str]):
        self.entity = entity
        self.errors = list(errors)
        super().__init__(f"Invalid {entity}: " + "; ".join(self.errors))


# =============================================================================
# FIELD RULES
# =============================================================================

def is_valid_phone(value: Any) -> bool:
    """Brazilian phone: 10 (landline) or 11 (mobile) digits once punctuation is gone."""
    if not isinstance(value, str):
        return False
    return len(only_digits(value)) in (10, 11)


def _check_digit(digits: str, first_weight: int) -> int:
    total = sum(int(d) * w for d, w in zip(digits, range(first_weight, 1, -1)))
    remainder = (total * 10) % 11
    return 0 if remainder >= 10 else remainder


def is_valid_cpf(value: Any) -> bool:
    """
    CPF check-digit validation.

    Digits 1-9 weighted 10..2 give check digit 10; digits 1-10 weighted 11..2
    give check digit 11. Eleven identical digits pass the arithmetic but are
    not issued, so they are rejected up front.
    """
    if not isinstance(value, str):
        return False
    cpf = only_digits(value)
    if len(cpf) != 11 or len(set(cpf)) == 1:
        return False
    if _check_digit(cpf[:9], 10) != int(cpf[9]):
        return False
    return _check_digit(cpf[:10], 11) == int(cpf[10])


def is_valid_url(value: Any) -> bool:
    if not isinstance(value, str):
        return False
    parsed = urlparse(value.strip())
    return parsed.scheme in ('http', 'https') and bool(parsed.netloc)


def sanitize_input(value: str) -> str:
    """
    Drop '<' and '>' and trim. This is all it does: quotes and ampersands
    are left alone.
    """
    return value.replace('<', '').replace('>', '').strip()


def sanitize_record(data: Dict[str, Any], fields: Iterable[str]) -> Dict[str, Any]:
    """Return a copy of data with sanitize_input applied to the listed string fields."""
    cleaned = dict(data)
    for field in fields:
        if isinstance(cleaned.get(field), str):
            cleaned[field] = sanitize_input(cleaned[field])
    return cleaned


# =============================================================================
# RECORD VALIDATORS
# =============================================================================

class _Checker:
    """Collects errors for one record. partial=True skips absent keys."""

    def __init__(self, data: Mapping[str, Any], partial: bool):
        self.data = data
        self.partial = partial
        self.errors: List[str] = []

    def skip(self, field: str) -> bool:
        return self.partial and field not in self.data

    def text(self, field: str) -> str:
        value = self.data.get(field)
        if value is None:
            return ''
        return value.strip() if isinstance(value, str) else str(value)

    def fail(self, field: str, message: str):
        self.errors.append(f"{field}: {message}")

    def required(self, field: str, label: str, min_len: int = 1, max_len: int = None):
        if self.skip(field):
            return
        value = self.text(field)
        if len(value) < min_len:
            if min_len == 1:
                self.fail(field, f"{label} is required")
            else:
                self.fail(field, f"{label} must have at least {min_len} characters")
        elif max_len is not None and len(value) > max_len:
            self.fail(field, f"{label} must have at most {max_len} characters")

    def optional(self, field: str, label: str, min_len: int = 0, max_len: int = None):
        if self.skip(field):
            return
        value = self.text(field)
        if not value:
            return
        if len(value) < min_len:
            self.fail(field, f"{label} must have at least {min_len} characters")
        elif max_len is not None and len(value) > max_len:
            self.fail(field, f"{label} must have at most {max_len} characters")

    def choice(self, field: str, label: str, allowed: Iterable[str], required: bool = False):
        if self.skip(field):
            return
        value = self.data.get(field)
        if value in (None, ''):
            if required:
                self.fail(field, f"{label} is required")
            return
        allowed = list(allowed)
        if value not in allowed:
            self.fail(field, f"{label} must be one of: {', '.join(allowed)}")


def validate_contact(data: Mapping[str, Any], partial: bool = False) -> List[str]:
    """Check a contact submission (or, with partial=True, an edit)."""
    check = _Checker(data, partial)

    check.required('name', 'Name', max_len=100)

    if not check.skip('phone') and not is_valid_phone(data.get('phone')):
        check.fail('phone', "Invalid phone. Use format (00) 00000-0000")

    check.optional('full_name', 'Full name', min_len=3, max_len=200)

    if not check.skip('cpf'):
        cpf = data.get('cpf')
        if cpf and not is_valid_cpf(cpf):
            check.fail('cpf', "Invalid CPF")

    if not check.skip('birth_date'):
        birth_date = data.get('birth_date')
        if birth_date and not (isinstance(birth_date, str) and _BIRTH_DATE_RE.match(birth_date)):
            check.fail('birth_date', "Date must be in DD/MM/YYYY format")

    check.optional('profession', 'Profession', max_len=100)
    check.choice('marital_status', 'Marital status', [m.value for m in MaritalStatus])
    check.choice('stage', 'Stage', [s.value for s in Stage])
    check.choice('ai_paused', 'AI paused', YES_NO)

    return check.errors


def validate_bike(data: Mapping[str, Any], partial: bool = False) -> List[str]:
    """Check a bike submission (or, with partial=True, an edit)."""
    check = _Checker(data, partial)

    check.required('model', 'Model', min_len=3, max_len=200)
    check.required('price', 'Price')
    check.required('range_km', 'Range', max_len=50)
    check.required('load_capacity', 'Load capacity', max_len=50)
    check.optional('battery', 'Battery', max_len=100)
    check.choice('license_required', 'License required', YES_NO, required=True)
    check.optional('notes', 'Notes', max_len=1000)

    for field in ('photo_1', 'photo_2', 'photo_3', 'video'):
        if check.skip(field):
            continue
        url = data.get(field)
        if url and not is_valid_url(url):
            check.fail(field, "Invalid URL")

    check.required('status', 'Status')

    return check.errors


def validate_sale(data: Mapping[str, Any]) -> List[str]:
    """Check a sale submission. Sales are never edited, so there is no partial mode."""
    check = _Checker(data, partial=False)

    check.required('customer_name', 'Name', min_len=3, max_len=200)

    if not is_valid_phone(data.get('customer_phone')):
        check.fail('customer_phone', "Invalid phone")

    bike_id = data.get('bike_id')
    if isinstance(bike_id, bool) or not isinstance(bike_id, int) or bike_id <= 0:
        check.fail('bike_id', "Select a valid bike")

    check.required('bike_model', 'Model')

    financed = data.get('financed')
    if not isinstance(financed, bool):
        check.fail('financed', "Financed must be true or false")
    elif financed and not check.text('down_payment'):
        check.fail('down_payment', "Down payment is required for financed sales")

    check.required('final_amount', 'Final amount')

    sale_date = data.get('sale_date')
    if sale_date and parse_date(sale_date) is None:
        check.fail('sale_date', "Date must be in DD-MM-YYYY format")

    return check.errors
