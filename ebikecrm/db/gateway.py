"""
Table Gateway
The one query/mutation interface every screen uses: select with equality
filters and an optional sort key, insert, update, delete.

Column names are checked against a per-table allowlist and quoted with
psycopg2.sql, so neither filters nor patches can inject SQL.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional

from psycopg2 import sql

from ebikecrm.db.connection import get_db_cursor, GatewayError

logger = logging.getLogger(__name__)

__all__ = ['TableGateway', 'GatewayError', 'contacts_table', 'bikes_table', 'sales_table']


def _validate_columns(fields: Iterable[str], allowed: set, table: str) -> None:
    """Raise ValueError if any field is not an allowed column name."""
    invalid = set(fields) - allowed
    if invalid:
        raise ValueError(f"Invalid {table} fields: {sorted(invalid)}")


class TableGateway:
    """CRUD access to one table. Rows come back as plain dicts."""

    def __init__(self, table: str, columns: Iterable[str], key: str = 'id'):
        self.table = table
        self.key = key
        self.columns = set(columns) | {key}

    def _where(self, match: Dict[str, Any]) -> sql.Composable:
        _validate_columns(match.keys(), self.columns, self.table)
        return sql.SQL(' AND ').join(
            sql.SQL('{} = {}').format(sql.Identifier(col), sql.Placeholder(col))
            for col in match
        )

    def select(
        self,
        filters: Optional[Dict[str, Any]] = None,
        order: Optional[str] = None,
        descending: bool = False,
    ) -> List[Dict[str, Any]]:
        """All rows matching every equality filter, optionally sorted by one column."""
        query = sql.SQL('SELECT * FROM {}').format(sql.Identifier(self.table))
        params = dict(filters or {})

        if params:
            query = query + sql.SQL(' WHERE ') + self._where(params)

        if order:
            _validate_columns([order], self.columns, self.table)
            direction = sql.SQL(' DESC') if descending else sql.SQL(' ASC')
            query = query + sql.SQL(' ORDER BY {}').format(sql.Identifier(order)) + direction

        with get_db_cursor() as cur:
            cur.execute(query, params)
            rows = cur.fetchall()

        logger.debug(f"select {self.table}: {len(rows)} rows (filters={filters}, order={order})")
        return [dict(row) for row in rows]

    def insert(self, record: Dict[str, Any]) -> Dict[str, Any]:
        """Insert one row and return it as stored (id and defaults included)."""
        if not record:
            raise ValueError(f"Nothing to insert into {self.table}")
        _validate_columns(record.keys(), self.columns, self.table)

        query = sql.SQL('INSERT INTO {} ({}) VALUES ({}) RETURNING *').format(
            sql.Identifier(self.table),
            sql.SQL(', ').join(sql.Identifier(col) for col in record),
            sql.SQL(', ').join(sql.Placeholder(col) for col in record),
        )

        with get_db_cursor() as cur:
            cur.execute(query, record)
            row = cur.fetchone()

        if row is None:
            raise GatewayError(f"Insert into {self.table} returned no row")
        logger.info(f"Inserted into {self.table}: id {row.get(self.key)}")
        return dict(row)

    def update(self, patch: Dict[str, Any], match: Dict[str, Any]) -> int:
        """Apply patch to rows matching match. Returns rows affected."""
        if not patch:
            return 0
        if not match:
            raise ValueError(f"Refusing to update every row of {self.table}")
        _validate_columns(patch.keys(), self.columns - {self.key}, self.table)
        _validate_columns(match.keys(), self.columns, self.table)

        # Placeholders for the patch and the match are namespaced so a column
        # can appear in both
        params = {f"set_{col}": value for col, value in patch.items()}
        params.update({f"where_{col}": value for col, value in match.items()})

        query = sql.SQL('UPDATE {} SET {} WHERE {}').format(
            sql.Identifier(self.table),
            sql.SQL(', ').join(
                sql.SQL('{} = {}').format(sql.Identifier(col), sql.Placeholder(f"set_{col}"))
                for col in patch
            ),
            sql.SQL(' AND ').join(
                sql.SQL('{} = {}').format(sql.Identifier(col), sql.Placeholder(f"where_{col}"))
                for col in match
            ),
        )

        with get_db_cursor() as cur:
            cur.execute(query, params)
            count = cur.rowcount

        logger.info(f"Updated {self.table} {match}: {sorted(patch.keys())} ({count} rows)")
        return count

    def delete(self, match: Dict[str, Any]) -> int:
        """Delete rows matching match. Returns rows affected."""
        if not match:
            raise ValueError(f"Refusing to delete every row of {self.table}")

        query = sql.SQL('DELETE FROM {} WHERE ').format(sql.Identifier(self.table)) + self._where(match)

        with get_db_cursor() as cur:
            cur.execute(query, dict(match))
            count = cur.rowcount

        logger.info(f"Deleted from {self.table} {match} ({count} rows)")
        return count


CONTACT_COLUMNS = {
    'name', 'full_name', 'phone', 'cpf', 'birth_date', 'marital_status',
    'profession', 'monthly_income', 'model_of_interest', 'stage', 'summary',
    'ai_paused', 'created_on',
}
BIKE_COLUMNS = {
    'model', 'price', 'range_km', 'load_capacity', 'battery', 'license_required',
    'notes', 'photo_1', 'photo_2', 'photo_3', 'video', 'status',
}
SALE_COLUMNS = {
    'customer_name', 'customer_phone', 'bike_id', 'bike_model', 'financed',
    'down_payment', 'final_amount', 'sale_date', 'created_at',
}

contacts_table = TableGateway('contacts', CONTACT_COLUMNS)
bikes_table = TableGateway('bikes', BIKE_COLUMNS)
sales_table = TableGateway('sales', SALE_COLUMNS)
