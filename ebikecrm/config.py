"""
E-Bike CRM Configuration
Loads settings from environment variables with sensible defaults.
"""

import logging
import os
from pathlib import Path
from dotenv import load_dotenv

_logger = logging.getLogger(__name__)

# Load .env file
env_path = Path(__file__).parent.parent / '.env'
load_dotenv(env_path)


class Config:
    """Application configuration."""

    # Database: must be set in .env, never hardcoded here
    DATABASE_URL = os.getenv('DATABASE_URL')
    if not DATABASE_URL:
        _logger.critical("DATABASE_URL is not set — cannot start. Copy .env.example to .env and configure it.")
        raise ValueError("DATABASE_URL environment variable is not set. Copy .env.example to .env and configure it.")

    # Timezone used to decide what "today" is for new records and dashboards
    TIMEZONE = os.getenv('TIMEZONE', 'America/Sao_Paulo')

    # Shown instead of a price when a bike has none
    PRICE_FALLBACK = os.getenv('PRICE_FALLBACK', 'Consultar')

    # Dashboard
    LEADS_WINDOW_DAYS = int(os.getenv('LEADS_WINDOW_DAYS', '7'))
    DEFAULT_PERIOD = os.getenv('DEFAULT_PERIOD', 'month')

    # Catalog importer: rapidfuzz score at or above which a model counts as a duplicate
    CATALOG_MATCH_THRESHOLD = int(os.getenv('CATALOG_MATCH_THRESHOLD', '90'))


# Singleton instance
config = Config()
