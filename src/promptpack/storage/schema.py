"""Database schema for the PromptPack file store."""

SCHEMA = """
-- Imported files: metadata plus cached tree/summary artifacts
CREATE TABLE IF NOT EXISTS files (
    id INTEGER PRIMARY KEY AUTOINCREMENT,  -- AUTOINCREMENT: ids are never reused
    display_name TEXT NOT NULL,
    file_path TEXT NOT NULL UNIQUE,
    language TEXT,
    size_bytes INTEGER NOT NULL DEFAULT 0,
    extension TEXT,
    created_at INTEGER NOT NULL,
    last_accessed_at INTEGER NOT NULL,
    last_known_tree TEXT,                  -- NULL until a tree is built
    summary TEXT,
    custom_ignore_patterns TEXT,
    is_favorite INTEGER NOT NULL DEFAULT 0,
    is_archived INTEGER NOT NULL DEFAULT 0
);

-- Indexes for listing and search
CREATE INDEX IF NOT EXISTS idx_files_display_name ON files(display_name);
CREATE INDEX IF NOT EXISTS idx_files_extension ON files(extension);
CREATE INDEX IF NOT EXISTS idx_files_last_accessed ON files(last_accessed_at);
"""

COLUMNS = (
    "id",
    "display_name",
    "file_path",
    "language",
    "size_bytes",
    "extension",
    "created_at",
    "last_accessed_at",
    "last_known_tree",
    "summary",
    "custom_ignore_patterns",
    "is_favorite",
    "is_archived",
)
