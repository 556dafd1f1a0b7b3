from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # MySQL
    mysql_host: str = "127.0.0.1"
    mysql_port: int = 3306
    mysql_user: str = "root"
    mysql_password: str = "rootpwd"
    mysql_db: str = "tcgcards"

    # Optional SQLite fallback for local dev
    use_sqlite: bool = True
    sqlite_path: str = "./tcgcards.db"

    # Upper bound for every "id IN (...)" batch; tune to the backend's
    # maximum number of bound parameters.
    query_chunk_size: int = 500

    # Shared secrets for the two caller classes. Unset means nobody gets in.
    admin_token: Optional[str] = None
    user_token: Optional[str] = None

    # Catalog import
    dataset_path: str = "./dataset"

    # Celery/Redis
    redis_url: str = "redis://127.0.0.1:6379/0"
    redis_disabled: bool = True  # disable by default for local MVP

    # Logging
    log_level: str = "INFO"
    log_json: bool = False

    cors_origins: List[str] = ["*"]

    model_config = SettingsConfigDict(env_file=".env")


settings = Settings()
