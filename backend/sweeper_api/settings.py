import os

class Settings:
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    DATA_DIR = os.getenv("DATA_DIR", "./data")
    # корень хранилища проектов, по умолчанию <DATA_DIR>/projects
    STORE_ROOT = os.getenv("STORE_ROOT") or os.path.join(DATA_DIR, "projects")
    PUBLIC_PREFIX = os.getenv("PUBLIC_PREFIX", "/downloads")

    # политика хранения: 24 часа и не больше 100 папок
    RETENTION_MAX_AGE_SEC = float(os.getenv("RETENTION_MAX_AGE_SEC", str(24 * 60 * 60)))
    RETENTION_MAX_COUNT = int(os.getenv("RETENTION_MAX_COUNT", "100"))
    RETENTION_INTERVAL_SEC = float(os.getenv("RETENTION_INTERVAL_SEC", "600"))

    MAX_UPLOAD_BYTES = int(os.getenv("MAX_UPLOAD_BYTES", str(5 * 1024 * 1024)))  # 5 МБ
    GENERATOR = os.getenv("GENERATOR", "sweeper_api.services.mock_generator:generate")

settings = Settings()
