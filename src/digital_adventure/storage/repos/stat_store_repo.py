from __future__ import annotations

import json
from typing import Any

from digital_adventure.storage.database import Database

_DIGIMON_JSON = frozenset({"base_stats", "bonus_stats", "attacks", "qualities"})
_TAMER_JSON = frozenset({"attributes", "skills", "xp_bonuses"})
_LINE_JSON = frozenset({"chain"})


def _serialize_fields(data: dict, json_fields: frozenset[str]) -> dict:
    out = dict(data)
    for field in json_fields:
        if field in out and out[field] is not None and not isinstance(out[field], str):
            out[field] = json.dumps(out[field])
    return out


def _deserialize_row(row: Any, json_fields: frozenset[str]) -> dict | None:
    if row is None:
        return None
    result = dict(row)
    for field in json_fields:
        raw = result.get(field)
        if raw is not None and isinstance(raw, str):
            result[field] = json.loads(raw)
    return result


def _upsert(conn: Any, table: str, data: dict) -> None:
    columns = ", ".join(data.keys())
    placeholders = ", ".join("?" for _ in data)
    updates = ", ".join(f"{k} = excluded.{k}" for k in data)
    sql = (
        f"INSERT INTO {table} ({columns}) VALUES ({placeholders}) "
        f"ON CONFLICT(id) DO UPDATE SET {updates}"
    )
    conn.execute(sql, list(data.values()))


class _StatStoreRepo:
    """Shared CRUD over one stat-store table with JSON columns."""

    table: str = ""
    json_fields: frozenset[str] = frozenset()

    def __init__(self, db: Database) -> None:
        self.db = db

    def save(self, record: dict) -> None:
        """Insert or update a record (UPSERT)."""
        data = _serialize_fields(record, self.json_fields)
        with self.db.get_connection() as conn:
            _upsert(conn, self.table, data)

    def get(self, record_id: str) -> dict | None:
        with self.db.get_connection() as conn:
            row = conn.execute(
                f"SELECT * FROM {self.table} WHERE id = ?", (record_id,)
            ).fetchone()
        return _deserialize_row(row, self.json_fields)

    def list_all(self) -> list[dict]:
        with self.db.get_connection() as conn:
            rows = conn.execute(f"SELECT * FROM {self.table} ORDER BY name, id").fetchall()
        return [_deserialize_row(r, self.json_fields) for r in rows]

    def update_field(self, record_id: str, field: str, value: Any) -> None:
        if field in self.json_fields and value is not None and not isinstance(value, str):
            value = json.dumps(value)
        with self.db.get_connection() as conn:
            conn.execute(
                f"UPDATE {self.table} SET {field} = ? WHERE id = ?",
                (value, record_id),
            )

    def delete(self, record_id: str) -> None:
        with self.db.get_connection() as conn:
            conn.execute(f"DELETE FROM {self.table} WHERE id = ?", (record_id,))


class DigimonRepo(_StatStoreRepo):
    """Digimon stat blocks, attacks and qualities."""

    table = "digimon"
    json_fields = _DIGIMON_JSON


class TamerRepo(_StatStoreRepo):
    """Tamer attributes, skills and XP bonuses."""

    table = "tamers"
    json_fields = _TAMER_JSON


class EvolutionLineRepo(_StatStoreRepo):
    """Evolution chains, one per partner digimon."""

    table = "evolution_lines"
    json_fields = _LINE_JSON
