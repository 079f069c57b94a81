from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    # postgresql+asyncpg://... in production, sqlite+aiosqlite:///./leaveflow.db locally
    DATABASE_URL: str

    # If DEV and you hit SSL cert issues on Windows, set DB_SSL_VERIFY=false in .env
    DB_SSL_VERIFY: bool = True

    SECRET_KEY: str
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    SUPER_ADMIN_EMAIL: str | None = None
    SUPER_ADMIN_PASSWORD: str | None = None
    SUPER_ADMIN_NAME: str | None = "Super Admin"
    ENV: str = "dev"  # "dev" or "prod"

    # --- SERVER (uvicorn) ---
    HOST: str = "127.0.0.1"
    PORT: int = 8000

    # --- EMAIL SETTINGS ---
    SMTP_HOST: str | None = None
    SMTP_PORT: int = 2525  # Default to Mailtrap port
    SMTP_USER: str | None = None
    SMTP_PASSWORD: str | None = None
    EMAILS_FROM_EMAIL: str = "no-reply@institute.edu"
    EMAILS_FROM_NAME: str = "Leave Portal"
    FRONTEND_URL: str = "http://localhost:5173" # For links in emails

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"

settings = Settings()
