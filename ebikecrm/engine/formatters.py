"""
Locale Formatters
Pure conversions between Brazilian display strings and normalized values.

None of these raise on string or None input: anything unparseable comes back
unchanged (formatters) or as a neutral value (parsers: None / Decimal 0).
"""

import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP, localcontext
from typing import Optional
from zoneinfo import ZoneInfo

from ebikecrm.config import config

_NON_DIGIT_RE = re.compile(r'\D')
_DATE_LITERAL_RE = re.compile(r'^(\d{2})-(\d{2})-(\d{4})$')
_AMOUNT_JUNK_RE = re.compile(r'[^\d,]')
_FIRST_DIGIT_RE = re.compile(r'\d')
_CENTS = Decimal('0.01')

CURRENCY_SYMBOL = 'R$'


def only_digits(value: Optional[str]) -> str:
    """Strip every non-digit character."""
    return _NON_DIGIT_RE.sub('', value or '')


# =============================================================================
# DISPLAY FORMATTERS
# =============================================================================

def to_cents(amount) -> Decimal:
    """Round to two decimals, half up, whatever the magnitude."""
    number = Decimal(str(amount))
    with localcontext() as ctx:
        # quantize fails once the digits outgrow the context precision
        ctx.prec = max(ctx.prec, number.adjusted() + 3)
        return number.quantize(_CENTS, rounding=ROUND_HALF_UP)


def format_brl(amount) -> str:
    """Format a number as BRL: 5000 -> 'R$ 5.000,00'."""
    number = to_cents(amount)
    sign = '-' if number < 0 else ''
    # en-US grouping first, then swap the separators
    grouped = f"{number.copy_abs():,.2f}".replace(',', '_').replace('.', ',').replace('_', '.')
    return f"{sign}{CURRENCY_SYMBOL} {grouped}"


def format_currency(value: Optional[str]) -> str:
    """
    Display a price the way the catalog shows it.

    Empty -> PRICE_FALLBACK. Already formatted ('R$' or a decimal comma) is
    kept, gaining the symbol if missing. Plain numbers are formatted with two
    decimals. Anything else is echoed.
    """
    if not value:
        return config.PRICE_FALLBACK

    if CURRENCY_SYMBOL in value:
        return value
    if ',' in value:
        return f"{CURRENCY_SYMBOL} {value}"

    try:
        number = float(value)
    except ValueError:
        return value
    if number != number or number in (float('inf'), float('-inf')):
        return value
    return format_brl(number)


def format_phone(value: str) -> str:
    """(DD) DDDD-DDDD for landlines, (DD) DDDDD-DDDD for mobiles."""
    digits = only_digits(value)
    if len(digits) == 10:
        return f"({digits[:2]}) {digits[2:6]}-{digits[6:]}"
    if len(digits) == 11:
        return f"({digits[:2]}) {digits[2:7]}-{digits[7:]}"
    return value


def format_cpf(value: str) -> str:
    """'12345678909' -> '123.456.789-09'"""
    digits = only_digits(value)
    if len(digits) != 11:
        return value
    return f"{digits[:3]}.{digits[3:6]}.{digits[6:9]}-{digits[9:]}"


def format_date(value: Optional[str]) -> Optional[str]:
    """Stored date text ('DD-MM-YYYY' or ISO timestamp) -> 'DD/MM/YYYY'."""
    if not value:
        return value

    match = _DATE_LITERAL_RE.match(value.strip())
    if match:
        day, month, year = match.groups()
        return f"{day}/{month}/{year}"

    parsed = parse_date(value)
    if parsed is None:
        return value
    return parsed.strftime('%d/%m/%Y')


# =============================================================================
# PARSERS
# =============================================================================

def parse_date(value: Optional[str]) -> Optional[date]:
    """
    Parse either stored date form into a date.
      '19-10-2026'                  -> date(2026, 10, 19)
      '2026-10-19T13:45:00.000Z'    -> date(2026, 10, 19)
    Timestamps carrying an offset are read as a day in config.TIMEZONE.
    Returns None when neither form matches.
    """
    if isinstance(value, datetime):
        return _local_day(value)
    if isinstance(value, date):
        return value
    if not value or not isinstance(value, str):
        return None

    text = value.strip()
    if _DATE_LITERAL_RE.match(text):
        try:
            return datetime.strptime(text, '%d-%m-%Y').date()
        except ValueError:
            return None

    if text.endswith('Z'):
        text = text[:-1] + '+00:00'
    try:
        return _local_day(datetime.fromisoformat(text))
    except ValueError:
        return None


def _local_day(moment: datetime) -> date:
    if moment.tzinfo is None:
        return moment.date()
    return moment.astimezone(ZoneInfo(config.TIMEZONE)).date()


def _is_negative(text: str) -> bool:
    """A minus sign anywhere before the first digit: '-100', 'R$ -100,00'."""
    first_digit = _FIRST_DIGIT_RE.search(text)
    return first_digit is not None and '-' in text[:first_digit.start()]


def date_literal(day: date) -> str:
    """date -> 'DD-MM-YYYY', the text form contacts and sales are stored with."""
    return day.strftime('%d-%m-%Y')


def parse_amount(value: Optional[str]) -> Decimal:
    """
    Parse a decimal-comma amount, ignoring symbols and thousands dots.
      'R$ 8.500,00' -> Decimal('8500.00')
      '2000'        -> Decimal('2000')
    Anything without digits parses as 0.
    """
    if value is None:
        return Decimal('0')
    text = str(value).strip()
    negative = _is_negative(text)
    cleaned = _AMOUNT_JUNK_RE.sub('', text)
    if not any(ch.isdigit() for ch in cleaned):
        return Decimal('0')

    # Only the last comma is a decimal separator
    if cleaned.count(',') > 1:
        head, _, tail = cleaned.rpartition(',')
        cleaned = head.replace(',', '') + ',' + tail
    try:
        amount = Decimal(cleaned.replace(',', '.'))
    except InvalidOperation:
        return Decimal('0')
    return -amount if negative else amount


def normalize_amount(value: Optional[str]) -> Optional[str]:
    """
    Storage form for sale amounts: symbols and thousands separators removed,
    decimal comma kept. 'R$ 8.500,00' -> '8500,00'. Echoes non-numeric input.
    """
    if not value:
        return value
    cleaned = _AMOUNT_JUNK_RE.sub('', value)
    if not any(ch.isdigit() for ch in cleaned):
        return value
    return f"-{cleaned}" if _is_negative(value) else cleaned
