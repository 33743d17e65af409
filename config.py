import os


def _env_flag(name, default):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


class Config:
    SECRET_KEY = os.environ.get("SESSION_SECRET", "dev-secret-key-change-in-production")

    # Durable slots: json (one file per slot), sqlite, or memory
    STORAGE_BACKEND = os.environ.get("STORAGE_BACKEND", "json")
    DATA_FOLDER = os.environ.get("DATA_FOLDER", "data")

    UPLOAD_FOLDER = os.environ.get("UPLOAD_FOLDER", "uploads")
    EXPORT_FOLDER = os.environ.get("EXPORT_FOLDER", "exports")
    ALLOWED_EXTENSIONS = {'xlsx', 'xls', 'csv'}
    MAX_CONTENT_LENGTH = 16 * 1024 * 1024  # 16MB max file size

    SEED_SAMPLE_DATA = _env_flag("SEED_SAMPLE_DATA", True)
    USERS_FILE = os.environ.get("USERS_FILE")
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "DEBUG")
