# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
Do NOT commit real secrets. Put the remote storage key in .env (local, gitignored).

This file exists to make the repo self-documenting even without opening .env.example.
"""

ENV_VARS = {
    # App / logging
    "AGENDA_APP_NAME": "App display name (default: agenda-escolar).",
    "AGENDA_LOG_LEVEL": "Console logging level (default: INFO).",
    # Paths (gitignored)
    "AGENDA_DATA_DIR": "Local data directory (default: .local/agenda).",
    "AGENDA_STORE_DB_PATH": "Key-value store SQLite path (default: <data_dir>/store.sqlite3).",
    "AGENDA_DOCUMENTS_DIR": "Where manual local backups are written (default: <data_dir>/documents).",
    "AGENDA_BACKGROUND_BACKUP_DIR": "Where hourly backups go (default: <documents_dir>/backups).",
    # Calendar
    "AGENDA_ACCENT_COLOR": "Accent colour used for selection and today's text (default: #6c757d).",
    # Notifications
    "AGENDA_NOTIFICATIONS_ENABLED": "Schedule a notification when an activity is created (true/false).",
    "AGENDA_NOTIFICATION_DELAY_SECONDS": "Delay before the notification is shown (default: 2).",
    # Backups
    "AGENDA_BACKUP_FILE_PREFIX": "Backup file name prefix (default: respaldo-actividades).",
    "AGENDA_BACKGROUND_BACKUP_ENABLED": "Run the periodic unattended backup (true/false).",
    "AGENDA_BACKGROUND_BACKUP_INTERVAL_SECONDS": "Periodic backup interval (default: 3600).",
    "AGENDA_RESTORE_POLL_INTERVAL_SECONDS": "Poll lastRestoreTime every N seconds (0 = off, default).",
    # Remote object storage (Supabase-compatible)
    "AGENDA_REMOTE_URL": "Project URL; remote backups are disabled when empty.",
    "AGENDA_REMOTE_API_KEY": "API key sent as apikey + bearer token.",
    "AGENDA_REMOTE_BUCKET": "Bucket name (default: backups).",
    "AGENDA_REMOTE_PREFIX": "Object prefix inside the bucket (default: backups).",
    "AGENDA_REMOTE_TIMEOUT_SECONDS": "HTTP timeout (default: 15).",
}
