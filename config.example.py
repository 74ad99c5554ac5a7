# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
Use:
- .env (local, gitignored)
- config_local.py (local safe overrides, gitignored)

This file exists to make the repo self-documenting even without opening .env.
"""

ENV_VARS = {
    # App / logging
    "TASKSYNC_APP_NAME": "App display name (default: tasksync).",
    "TASKSYNC_LOG_LEVEL": "Console logging level (default: INFO).",
    # Paths (gitignored)
    "TASKSYNC_DATA_DIR": "Local data directory, also holds tasksync.log (default: .local/tasksync).",
    "TASKSYNC_TASKS_DB_PATH": "Local task store SQLite path (default: <data_dir>/tasks.sqlite3).",
    # Remote server
    "TASKSYNC_API_BASE_URL": "Task server base URL, e.g. http://localhost:3000 (empty => in-process demo backend).",
    "TASKSYNC_HTTP_CONNECT_TIMEOUT_SECONDS": "HTTP connect timeout (default: 5).",
    "TASKSYNC_HTTP_READ_TIMEOUT_SECONDS": "HTTP read timeout, never below the connect timeout (default: 15).",
    # Connectivity
    "TASKSYNC_START_ONLINE": "Initial connectivity state (true/false, default: true).",
    "TASKSYNC_PROBE_ENABLED": "Poll the server to detect online/offline transitions (true/false).",
    "TASKSYNC_PROBE_INTERVAL_SECONDS": "Probe interval (default: 15).",
    # Connectors
    "TASKSYNC_CONSOLE_ENABLED": "Enable the console (true/false, default: true).",
}
