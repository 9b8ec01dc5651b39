# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
Do NOT commit real secrets; keep them in .env (local, gitignored).

This file exists to make the repo self-documenting even without opening .env.example.
"""

ENV_VARS = {
    # App / logging
    "CHANNELING_APP_NAME": "App display name (default: channeling).",
    "CHANNELING_LOG_LEVEL": "Logging level (default: INFO).",
    # Connectors
    "CHANNELING_CONSOLE_ENABLED": "Enable console connector (true/false, default: true).",
    "CHANNELING_MATRIX_ENABLED": "Enable Matrix connector (true/false, default: false).",
    # Matrix
    "CHANNELING_MATRIX_HOMESERVER": "Matrix homeserver URL.",
    "CHANNELING_MATRIX_USER_ID": "Matrix user ID (bot).",
    "CHANNELING_MATRIX_PASSWORD": "Password for first login (session stored locally).",
    "CHANNELING_MATRIX_ROOMS": "Optional allowlist of room IDs (empty => all rooms).",
    # Paths (gitignored)
    "CHANNELING_DATA_DIR": "Local data directory (default: .local/channeling).",
    "CHANNELING_MATRIX_STORE_PATH": "Matrix session dir (default: <data_dir>/matrix_store).",
    "CHANNELING_DATABASE_FILE": (
        "SQLite database path (default: <data_dir>/channeling.sqlite3; DATABASE_FILE also accepted)."
    ),
    # Tracking
    "CHANNELING_REACTIONS": (
        "Reaction -> tags map, ';'-separated entries of name=tag,tag (default: ladybug=bug,qa)."
    ),
}
