"""
Data Models
Dataclasses for all entities. These are pure Python objects, no database logic.

Text-typed fields mirror what is stored: contact creation dates and sale dates
are 'DD-MM-YYYY' strings, amounts are decimal-comma strings. Parsing happens
in ebikecrm.engine.formatters.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class Stage(str, Enum):
    """CRM pipeline stages, in board order."""
    INITIAL_CONTACT = 'Initial Contact'
    CATALOG_SENT = 'Catalog Sent'
    QUESTIONS = 'Questions'
    QUALIFIED = 'Qualified'

    @classmethod
    def from_value(cls, value: Optional[str]) -> Optional['Stage']:
        """Exact (case-sensitive) lookup. Unknown text maps to None."""
        for stage in cls:
            if stage.value == value:
                return stage
        return None


class MaritalStatus(str, Enum):
    SINGLE = 'Single'
    MARRIED = 'Married'
    DIVORCED = 'Divorced'
    WIDOWED = 'Widowed'


YES_NO = ('yes', 'no')


@dataclass
class Contact:
    """A sales lead on the CRM board."""
    id: Optional[int] = None
    name: str = ''
    full_name: Optional[str] = None
    phone: str = ''
    cpf: Optional[str] = None
    birth_date: Optional[str] = None
    marital_status: Optional[str] = None
    profession: Optional[str] = None
    monthly_income: Optional[str] = None
    model_of_interest: Optional[str] = None
    stage: Optional[str] = Stage.INITIAL_CONTACT.value
    summary: Optional[str] = None
    ai_paused: Optional[str] = None
    created_on: Optional[str] = None


@dataclass
class Bike:
    """Catalog item"""
    id: Optional[int] = None
    model: str = ''
    price: Optional[str] = None
    range_km: Optional[str] = None
    load_capacity: Optional[str] = None
    battery: Optional[str] = None
    license_required: str = 'no'
    notes: Optional[str] = None
    photo_1: Optional[str] = None
    photo_2: Optional[str] = None
    photo_3: Optional[str] = None
    video: Optional[str] = None
    status: str = 'Available'


@dataclass
class Sale:
    """Completed transaction"""
    id: Optional[int] = None
    customer_name: str = ''
    customer_phone: str = ''
    bike_id: Optional[int] = None
    bike_model: str = ''
    financed: bool = False
    down_payment: Optional[str] = None
    final_amount: str = ''
    sale_date: Optional[str] = None
    created_at: Optional[datetime] = None
