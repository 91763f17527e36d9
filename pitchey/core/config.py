import json

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    DATABASE_URL: str

    REDIS_URL: str = "redis://redis:6379/0"

    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    JWT_EXPIRE_DAYS: int = 30
    ENABLE_JWT_FALLBACK: bool = True

    SESSION_EXPIRE_DAYS: int = 30
    SESSION_COOKIE_NAME: str = "pitchey-session"
    # Cookie names issued by earlier auth stacks, still accepted on read
    LEGACY_SESSION_COOKIE_NAMES: str = '["better-auth.session_token","session"]'
    SESSION_CACHE_TTL_SECONDS: int = 3600

    LOGIN_RATE_LIMIT: str = "5/minute"

    BACKEND_CORS_ORIGINS: str = (
        '["http://localhost:5173","http://localhost:3000","https://pitchey.pages.dev"]'
    )

    API_PREFIX: str = "/api"
    PROJECT_NAME: str = "Pitchey API"
    DEBUG: bool = False

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"

    @property
    def cors_origins(self) -> list[str]:
        try:
            parsed: list[str] = json.loads(self.BACKEND_CORS_ORIGINS)
            return parsed
        except json.JSONDecodeError:
            return ["http://localhost:5173", "http://localhost:3000"]

    @property
    def legacy_session_cookie_names(self) -> list[str]:
        try:
            parsed: list[str] = json.loads(self.LEGACY_SESSION_COOKIE_NAMES)
            return parsed
        except json.JSONDecodeError:
            return [name.strip() for name in self.LEGACY_SESSION_COOKIE_NAMES.split(",") if name]

    @property
    def session_cookie_names(self) -> list[str]:
        """Primary cookie first, then legacy names in configured order."""
        return [self.SESSION_COOKIE_NAME, *self.legacy_session_cookie_names]


settings = Settings()
