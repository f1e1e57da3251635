import os
from pathlib import Path

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    APP_NAME: str = "Postgirl"
    APP_VERSION: str = "0.3.0"
    ENVIRONMENT: str = "development"

    DATABASE_URL: str = "sqlite:///./data/postgirl.db"

    CORS_ORIGINS: str = "http://localhost:1420"

    # Defaults applied to every imported request
    DEFAULT_TIMEOUT_MS: int = 30000
    DEFAULT_FOLLOW_REDIRECTS: bool = True

    # Deepest Postman folder nesting the importer will walk
    MAX_IMPORT_DEPTH: int = 64
    # Backstop for example synthesis on deeply nested schemas
    MAX_EXAMPLE_DEPTH: int = 32

    OPENAPI_DEFAULT_SERVER_URL: str = "https://api.example.com"

    model_config = {"env_file": ".env", "extra": "ignore"}


settings = Settings()

_db_path = os.getenv("POSTGIRL_DB_PATH")
if _db_path:
    db_path = Path(_db_path).expanduser().resolve()
    db_path.parent.mkdir(parents=True, exist_ok=True)
    settings.DATABASE_URL = f"sqlite:///{db_path.as_posix()}"
else:
    _data_dir = os.getenv("POSTGIRL_DATA_DIR")
    if _data_dir:
        data_dir = Path(_data_dir).expanduser().resolve()
        data_dir.mkdir(parents=True, exist_ok=True)
        settings.DATABASE_URL = f"sqlite:///{(data_dir / 'postgirl.db').as_posix()}"
