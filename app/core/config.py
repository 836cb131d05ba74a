from pydantic_settings import BaseSettings


class Settings(BaseSettings):

    PROJECT_NAME: str = "Run Import API"
    DATABASE_URL: str = "mysql+pymysql://user:password@db:3306/runimport"
    LOG_LEVEL: str = "INFO"
    DEFAULT_TIMEZONE: str = "UTC"
    RUN_IMPORT_MAX_UPLOAD_BYTES: int = 10 * 1024 * 1024
    RUN_IMPORT_TRANSACTION_TIMEOUT_SECONDS: float = 200.0
    RUN_IMPORT_MAX_ATTEMPTS: int = 3
    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()
