from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 3000
    CORS_ORIGINS: str = "*"
    LOG_LEVEL: str = "INFO"

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///studentwallet.db"
    DATABASE_ECHO: bool = False

    # Auth (tokens are issued by the identity provider, only verified here)
    AUTH_JWT_SECRET: str = "studentwallet-dev-secret"
    AUTH_JWT_ALGORITHM: str = "HS256"
    AUTH_JWT_AUDIENCE: str = ""
    AUTH_CLIENT_ID: str = "studentwallet-client"
    AUTH_WRITE_ROLES: str = "admin,user"
    AUTH_DELETE_ROLES: str = "admin"

    # Paging / uploads
    PAGE_SIZE_DEFAULT: int = 5
    PAGE_SIZE_MAX: int = 100
    FILE_SIZE_MAX: int = 5 * 1024 * 1024

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")


settings = Settings()
