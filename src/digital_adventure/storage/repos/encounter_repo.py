from __future__ import annotations

import json
from typing import Any

from digital_adventure.storage.database import Database


def _row_to_document(row: Any) -> dict | None:
    if row is None:
        return None
    document = json.loads(row["data"])
    document["version"] = row["version"]
    return document


class EncounterRepo:
    """Encounter documents: one JSON snapshot per encounter plus a version column."""

    def __init__(self, db: Database) -> None:
        self.db = db

    def save(self, encounter_dict: dict) -> None:
        """Insert or overwrite an encounter, ignoring the stored version."""
        with self.db.get_connection() as conn:
            conn.execute(
                "INSERT INTO encounters (id, name, phase, data, version, created_at, updated_at) "
                "VALUES (?, ?, ?, ?, ?, ?, ?) "
                "ON CONFLICT(id) DO UPDATE SET name = excluded.name, phase = excluded.phase, "
                "data = excluded.data, version = excluded.version, updated_at = excluded.updated_at",
                (
                    encounter_dict["id"],
                    encounter_dict["name"],
                    encounter_dict["phase"],
                    json.dumps(encounter_dict),
                    encounter_dict.get("version", 0),
                    encounter_dict["created_at"],
                    encounter_dict["updated_at"],
                ),
            )

    def save_if_unchanged(self, encounter_dict: dict, expected_version: int) -> bool:
        """Compare-and-swap write. False when someone else saved first."""
        with self.db.get_connection() as conn:
            cursor = conn.execute(
                "UPDATE encounters SET name = ?, phase = ?, data = ?, version = ?, updated_at = ? "
                "WHERE id = ? AND version = ?",
                (
                    encounter_dict["name"],
                    encounter_dict["phase"],
                    json.dumps(encounter_dict),
                    encounter_dict["version"],
                    encounter_dict["updated_at"],
                    encounter_dict["id"],
                    expected_version,
                ),
            )
        return cursor.rowcount == 1

    def get(self, encounter_id: str) -> dict | None:
        with self.db.get_connection() as conn:
            row = conn.execute(
                "SELECT data, version FROM encounters WHERE id = ?", (encounter_id,)
            ).fetchone()
        return _row_to_document(row)

    def list_all(self) -> list[dict]:
        """Summaries only, newest first."""
        with self.db.get_connection() as conn:
            rows = conn.execute(
                "SELECT id, name, phase, version, created_at, updated_at "
                "FROM encounters ORDER BY updated_at DESC"
            ).fetchall()
        return [dict(r) for r in rows]

    def delete(self, encounter_id: str) -> None:
        with self.db.get_connection() as conn:
            conn.execute("DELETE FROM encounters WHERE id = ?", (encounter_id,))
