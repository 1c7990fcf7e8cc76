"""
Unit tests for scripts/import_catalog.py.

Strategy:
  - Row helpers tested directly with varied inputs (NaN, floats, sim/não)
  - import_bikes runs over in-memory DataFrames with bikes_table and crm patched
  - load_sheet / run_import read real CSV files written to tmp_path

Coverage not attempted:
  - main() CLI entry point (argparse + sys.exit)
"""

import sys
from pathlib import Path
from unittest.mock import patch

import numpy as np
import pandas as pd
import pytest

# Add scripts/ to path so we can import the module
sys.path.insert(0, str(Path(__file__).parent.parent.parent / "scripts"))

from import_catalog import (  # noqa: E402
    cell_text,
    find_duplicate,
    import_bikes,
    load_sheet,
    normalize_license,
    row_to_bike,
    run_import,
)


def _row(**overrides):
    row = {
        'model': 'Urban 350', 'price': 7990.0, 'range_km': '40 km',
        'load_capacity': '120 kg', 'battery': np.nan, 'license_required': 'não',
        'notes': np.nan, 'photo_1': np.nan, 'photo_2': np.nan, 'photo_3': np.nan,
        'video': np.nan, 'status': np.nan,
    }
    row.update(overrides)
    return row


@pytest.fixture
def store():
    """bikes_table and crm patched; the store starts with one bike."""
    with patch('import_catalog.bikes_table') as bikes_table, \
         patch('import_catalog.crm') as crm:
        bikes_table.select.return_value = [{'id': 1, 'model': 'Cargo 500'}]
        crm.create_bike.side_effect = range(100, 200)
        yield bikes_table, crm


# ---------------------------------------------------------------------------
# Row helpers
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("value, expected", [
    ('sim', 'yes'), ('Sim', 'yes'), ('yes', 'yes'), (True, 'yes'), (1, 'yes'),
    ('não', 'no'), ('nao', 'no'), ('No', 'no'), (False, 'no'), ('', 'no'),
    (np.nan, 'no'), (None, 'no'),
    ('talvez', None),
])
def test_normalize_license(value, expected):
    assert normalize_license(value) == expected


@pytest.mark.parametrize("value, expected", [
    (7990.0, '7990'),
    (7990.5, '7990.5'),
    ('  48V  ', '48V'),
    ('', None),
    ('   ', None),
    (np.nan, None),
    (None, None),
])
def test_cell_text(value, expected):
    assert cell_text(value) == expected


def test_row_to_bike_defaults_status_and_license():
    bike = row_to_bike(_row(license_required=np.nan))
    assert bike.model == 'Urban 350'
    assert bike.price == '7990'
    assert bike.status == 'Available'
    assert bike.license_required == 'no'
    assert bike.battery is None


def test_row_to_bike_keeps_given_status():
    assert row_to_bike(_row(status='Sold')).status == 'Sold'


def test_find_duplicate_ignores_word_order_and_case():
    assert find_duplicate('Sport 500 E-Bike', ['e-bike sport 500'], 90) == 'e-bike sport 500'


def test_find_duplicate_below_threshold():
    assert find_duplicate('Urban 350', ['Cargo 500'], 90) is None


def test_find_duplicate_empty_known_list():
    assert find_duplicate('Urban 350', [], 90) is None


# ---------------------------------------------------------------------------
# import_bikes
# ---------------------------------------------------------------------------

def test_import_creates_valid_rows(store):
    _, crm = store
    df = pd.DataFrame([_row(), _row(model='Trail X9', price='12.500,00')], dtype=object)
    created, skipped, rejected = import_bikes(df)
    assert (created, skipped, rejected) == (2, 0, 0)
    first = crm.create_bike.call_args_list[0][0][0]
    assert first.model == 'Urban 350'
    assert first.price == '7990'
    assert first.license_required == 'no'


def test_import_skips_existing_model(store):
    _, crm = store
    df = pd.DataFrame([_row(model='cargo 500')], dtype=object)
    assert import_bikes(df) == (0, 1, 0)
    crm.create_bike.assert_not_called()


def test_import_skips_duplicate_within_file(store):
    _, crm = store
    df = pd.DataFrame([_row(), _row(model='URBAN 350')], dtype=object)
    assert import_bikes(df) == (1, 1, 0)
    assert crm.create_bike.call_count == 1


def test_import_rejects_invalid_rows(store):
    _, crm = store
    df = pd.DataFrame([
        _row(model=np.nan),
        _row(model='Trail X9', license_required='talvez'),
        _row(model='Mountain Z', price=np.nan),
        _row(model='City Y7', photo_1='not-a-url'),
    ], dtype=object)
    assert import_bikes(df) == (0, 0, 4)
    crm.create_bike.assert_not_called()


def test_import_dry_run_writes_nothing(store):
    _, crm = store
    df = pd.DataFrame([_row(), _row(model='Trail X9')], dtype=object)
    assert import_bikes(df, dry_run=True) == (2, 0, 0)
    crm.create_bike.assert_not_called()


def test_import_threshold_override(store):
    df = pd.DataFrame([_row(model='Cargo 500 Plus')], dtype=object)
    assert import_bikes(df, threshold=100) == (1, 0, 0)


# ---------------------------------------------------------------------------
# load_sheet / run_import
# ---------------------------------------------------------------------------

def _write_csv(path, text):
    path.write_text(text, encoding='utf-8')
    return path


def test_load_sheet_maps_portuguese_headers(tmp_path):
    csv = _write_csv(
        tmp_path / 'catalog.csv',
        'Modelo,Valor,Autonomia,Aguenta,precisa_CNH,Vídeo,Cor\n'
        'Urban 350,7990,40 km,120 kg,não,,azul\n',
    )
    df = load_sheet(csv)
    assert list(df.columns) == ['model', 'price', 'range_km', 'load_capacity', 'license_required', 'video']
    assert df.iloc[0]['model'] == 'Urban 350'
    assert df.iloc[0]['price'] == '7990'


def test_run_import_missing_file_returns_1(tmp_path):
    assert run_import(tmp_path / 'missing.xlsx') == 1


def test_run_import_without_model_column_returns_1(tmp_path):
    csv = _write_csv(tmp_path / 'catalog.csv', 'Valor,Autonomia\n7990,40 km\n')
    assert run_import(csv) == 1


def test_run_import_success_returns_0(tmp_path, store):
    csv = _write_csv(
        tmp_path / 'catalog.csv',
        'model,price,range,load,license_required\nUrban 350,7990,40 km,120 kg,no\n',
    )
    assert run_import(csv) == 0
    _, crm = store
    assert crm.create_bike.call_count == 1


def test_run_import_with_rejections_returns_1(tmp_path, store):
    csv = _write_csv(
        tmp_path / 'catalog.csv',
        'model,price,range,load,license_required\nUrban 350,,40 km,120 kg,no\n',
    )
    assert run_import(csv) == 1


def test_run_import_store_failure_returns_1(tmp_path, store):
    bikes_table, _ = store
    bikes_table.select.side_effect = RuntimeError('connection refused')
    csv = _write_csv(
        tmp_path / 'catalog.csv',
        'model,price,range,load\nUrban 350,7990,40 km,120 kg\n',
    )
    assert run_import(csv) == 1
