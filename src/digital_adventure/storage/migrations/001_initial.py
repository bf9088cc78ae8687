from __future__ import annotations

import sqlite3

_SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS digimon (
    id           TEXT PRIMARY KEY,
    name         TEXT NOT NULL,
    species      TEXT,
    stage        TEXT NOT NULL DEFAULT 'rookie',
    base_stats   TEXT,
    bonus_stats  TEXT,
    attacks      TEXT,
    qualities    TEXT,
    partner_id   TEXT,
    is_enemy     BOOLEAN NOT NULL DEFAULT 0,
    notes        TEXT
);

CREATE TABLE IF NOT EXISTS tamers (
    id              TEXT PRIMARY KEY,
    name            TEXT NOT NULL,
    age             INTEGER NOT NULL DEFAULT 0,
    campaign_level  TEXT NOT NULL DEFAULT 'standard',
    attributes      TEXT,
    skills          TEXT,
    xp_bonuses      TEXT,
    inspiration     INTEGER NOT NULL DEFAULT 0,
    notes           TEXT
);

CREATE TABLE IF NOT EXISTS evolution_lines (
    id                   TEXT PRIMARY KEY,
    name                 TEXT NOT NULL,
    partner_id           TEXT,
    current_stage_index  INTEGER NOT NULL DEFAULT 0,
    chain                TEXT
);

CREATE TABLE IF NOT EXISTS encounters (
    id          TEXT PRIMARY KEY,
    name        TEXT NOT NULL,
    phase       TEXT NOT NULL DEFAULT 'setup',
    data        TEXT NOT NULL,
    version     INTEGER NOT NULL DEFAULT 0,
    created_at  TEXT NOT NULL,
    updated_at  TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_encounters_updated ON encounters(updated_at);
"""


def upgrade(conn: sqlite3.Connection) -> None:
    """Create the stat store and encounter tables."""
    conn.executescript(_SCHEMA_SQL)
