#!/usr/bin/env python3
"""
Bike Catalog Importer
Loads bikes from a spreadsheet (.xlsx or .csv) into the bikes table.

Features:
- Accepts English column names or the legacy Portuguese ones
  (modelo, valor, autonomia, aguenta, precisa_CNH, vídeo, ...)
- Skips models that fuzzy-match a bike already in the store or earlier in the file
- Validates every row with the same rules as the admin form
- Dry-run mode
- Re-runnable / safe to run multiple times
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import pandas as pd
from rapidfuzz import fuzz
from tqdm import tqdm

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from ebikecrm.config import config  # noqa: E402
from ebikecrm.db.gateway import bikes_table  # noqa: E402
from ebikecrm.engine import crm  # noqa: E402
from ebikecrm.engine.validators import BIKE_TEXT_FIELDS, sanitize_record, validate_bike  # noqa: E402
from ebikecrm.models import Bike  # noqa: E402

DEFAULT_PATH = project_root / "data" / "catalog.xlsx"

# Spreadsheet header (lower-cased, stripped) -> Bike field
COLUMN_ALIASES = {
    'model': 'model', 'modelo': 'model',
    'price': 'price', 'valor': 'price',
    'range': 'range_km', 'range_km': 'range_km', 'autonomia': 'range_km',
    'load_capacity': 'load_capacity', 'load': 'load_capacity', 'aguenta': 'load_capacity',
    'battery': 'battery', 'bateria': 'battery',
    'license_required': 'license_required', 'precisa_cnh': 'license_required',
    'notes': 'notes', 'obs': 'notes',
    'photo_1': 'photo_1', 'foto_1': 'photo_1',
    'photo_2': 'photo_2', 'foto_2': 'photo_2',
    'photo_3': 'photo_3', 'foto_3': 'photo_3',
    'video': 'video', 'vídeo': 'video',
    'status': 'status',
}

YES_VALUES = {'yes', 'sim', 's', 'y', 'true', '1'}
NO_VALUES = {'no', 'não', 'nao', 'n', 'false', '0', ''}


# =============================================================================
# ROW HELPERS
# =============================================================================

def normalize_license(value) -> Optional[str]:
    """Map sim/não/yes/no/True/False to 'yes'/'no'. Unknown values -> None."""
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return 'no'
    text = str(value).strip().lower()
    if text in YES_VALUES:
        return 'yes'
    if text in NO_VALUES:
        return 'no'
    return None


def cell_text(value) -> Optional[str]:
    """Spreadsheet cell -> stripped text, or None for blanks/NaN."""
    if value is None:
        return None
    if not isinstance(value, str) and pd.isna(value):
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    text = str(value).strip()
    return text or None


def row_to_bike(row: Dict) -> Bike:
    """Build a Bike from a spreadsheet row already keyed by Bike field names."""
    data = {field: cell_text(row.get(field)) for field in COLUMN_ALIASES.values()}
    data['license_required'] = normalize_license(row.get('license_required'))
    data['status'] = data['status'] or 'Available'
    return Bike(**data)


def find_duplicate(model: str, known_models: List[str], threshold: int) -> Optional[str]:
    """
    Return the known model that best matches, if its score reaches threshold.
    token_sort_ratio so 'Sport 500 E-Bike' matches 'E-Bike Sport 500'.
    """
    best_name, best_score = None, 0
    for known in known_models:
        score = fuzz.token_sort_ratio(model.lower(), known.lower())
        if score > best_score:
            best_name, best_score = known, score
    if best_score >= threshold:
        logging.debug(f"'{model}' matches existing '{best_name}' (score {best_score})")
        return best_name
    return None


def load_sheet(path: Path) -> pd.DataFrame:
    """Read the spreadsheet and rename known headers to Bike field names."""
    if path.suffix.lower() == '.csv':
        df = pd.read_csv(path, dtype=object)
    else:
        df = pd.read_excel(path, dtype=object)

    renames = {}
    for column in df.columns:
        key = str(column).strip().lower()
        if key in COLUMN_ALIASES:
            renames[column] = COLUMN_ALIASES[key]
    unknown = [c for c in df.columns if c not in renames]
    if unknown:
        logging.warning(f"Ignoring unknown columns: {unknown}")
    return df.rename(columns=renames)[list(renames.values())]


# =============================================================================
# IMPORT
# =============================================================================

def import_bikes(df: pd.DataFrame, dry_run: bool = False, threshold: int = None) -> Tuple[int, int, int]:
    """
    Insert every valid, non-duplicate row.
    Returns: (created, skipped_duplicates, rejected)
    """
    threshold = threshold if threshold is not None else config.CATALOG_MATCH_THRESHOLD
    known_models = [row['model'] for row in bikes_table.select() if row.get('model')]

    created = skipped = rejected = 0

    records = df.to_dict(orient='records')
    for index, row in enumerate(tqdm(records, desc="Importing bikes", unit="bike"), start=2):  # header is line 1
        bike = row_to_bike(row)

        if not bike.model:
            logging.debug(f"Line {index}: empty model, skipped")
            rejected += 1
            continue

        match = find_duplicate(bike.model, known_models, threshold)
        if match:
            logging.info(f"Line {index}: '{bike.model}' already in catalog as '{match}', skipped")
            skipped += 1
            continue

        data = sanitize_record(vars(bike), BIKE_TEXT_FIELDS)
        errors = validate_bike(data)
        if errors:
            logging.warning(f"Line {index}: '{bike.model}' rejected: {errors}")
            rejected += 1
            continue

        if dry_run:
            logging.info(f"[DRY-RUN] Would create bike: {bike.model}")
        else:
            bike_id = crm.create_bike(bike)
            logging.info(f"Line {index}: created bike #{bike_id} {bike.model}")

        known_models.append(bike.model)
        created += 1

    return created, skipped, rejected


def run_import(path: Path = DEFAULT_PATH, dry_run: bool = False, log_level: str = "INFO") -> int:
    """Main import function. Returns a process exit code."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format='%(asctime)s - %(levelname)s - %(message)s',
    )

    logging.info("=" * 60)
    logging.info("BIKE CATALOG IMPORT")
    logging.info(f"Mode: {'DRY-RUN' if dry_run else 'LIVE'}")
    logging.info(f"Source: {path}")
    logging.info("=" * 60)

    if not path.exists():
        logging.error(f"Spreadsheet not found: {path}")
        return 1

    try:
        df = load_sheet(path)
    except Exception as e:
        logging.error(f"Failed to read spreadsheet: {e}")
        return 1

    if 'model' not in df.columns:
        logging.error("Spreadsheet has no model/modelo column")
        return 1

    try:
        created, skipped, rejected = import_bikes(df, dry_run=dry_run)
    except Exception as e:
        logging.error(f"Import failed: {e}", exc_info=True)
        return 1

    logging.info("=" * 60)
    logging.info("IMPORT COMPLETE")
    logging.info(f"Bikes {'to create' if dry_run else 'created'}: {created}")
    logging.info(f"Skipped (duplicates): {skipped}")
    logging.info(f"Rejected: {rejected}")
    logging.info("=" * 60)

    return 0 if rejected == 0 else 1


# =============================================================================
# CLI
# =============================================================================

def main():
    parser = argparse.ArgumentParser(description="Import a bike spreadsheet into the catalog")
    parser.add_argument('--file', type=Path, default=DEFAULT_PATH, help=f"Spreadsheet path (default: {DEFAULT_PATH})")
    parser.add_argument('--dry-run', action='store_true', help="Show what would be imported without writing")
    parser.add_argument(
        '--log-level',
        default='INFO',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        help="Logging level (default: INFO)",
    )
    args = parser.parse_args()

    sys.exit(run_import(path=args.file, dry_run=args.dry_run, log_level=args.log_level))


if __name__ == "__main__":
    main()
