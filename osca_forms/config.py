from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # OSCA backend (schema store, barangay directory, citizen persistence)
    backend_url: str = "http://backend:5000"
    request_timeout: float = 30.0
    session_cookie_name: str = "connect.sid"

    # Form sessions
    session_ttl_seconds: int = 1800
    max_upload_mb: int = 10

    cors_origins: str = "http://localhost:5173"

    class Config:
        env_file = ".env"


settings = Settings()
