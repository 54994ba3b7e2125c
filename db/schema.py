# SQL schema for Curio database

SCHEMA_VERSION = 2

SCHEMA_SQL = """
-- Devices (account-free identity, one row per x-device-id seen)
CREATE TABLE IF NOT EXISTS devices (
    id TEXT PRIMARY KEY,
    created_at INTEGER NOT NULL
);

-- Settings (singleton per device, stored as JSON)
CREATE TABLE IF NOT EXISTS settings (
    device_id TEXT PRIMARY KEY,
    json TEXT,
    updated_at INTEGER
);

-- Stats (singleton per device, stored as JSON)
CREATE TABLE IF NOT EXISTS stats (
    device_id TEXT PRIMARY KEY,
    json TEXT,
    updated_at INTEGER
);

-- Chat sessions
CREATE TABLE IF NOT EXISTS sessions (
    id TEXT PRIMARY KEY,
    device_id TEXT NOT NULL,
    title TEXT NOT NULL DEFAULT '',
    preview TEXT NOT NULL DEFAULT '',
    updated_at INTEGER NOT NULL,
    messages_json TEXT
);

-- Knowledge library
CREATE TABLE IF NOT EXISTS library (
    id TEXT PRIMARY KEY,
    device_id TEXT NOT NULL,
    type TEXT NOT NULL DEFAULT 'card' CHECK(type IN ('scan', 'card')),
    title TEXT NOT NULL DEFAULT '',
    content TEXT NOT NULL DEFAULT '',
    category TEXT NOT NULL,
    thumbnail TEXT,
    fun_fact TEXT,
    related_json TEXT,
    tags_json TEXT,
    date INTEGER NOT NULL
);
"""

# Indexes for performance
INDEXES_SQL = """
CREATE INDEX IF NOT EXISTS idx_sessions_device_updated ON sessions (device_id, updated_at DESC);
CREATE INDEX IF NOT EXISTS idx_library_device_date ON library (device_id, date DESC);
"""
