from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional, List


class Settings(BaseSettings):
    # Supabase (Postgres tables: users, biometric_credentials, webauthn_challenges)
    supabase_url: str = ""
    supabase_key: str = ""
    supabase_service_role_key: Optional[str] = None  # Bypasses RLS; preferred for server-side writes

    # Relying party
    rp_name: str = "Biometric Auth App"
    rp_id: Optional[str] = None  # Falls back to the request Host header when unset
    webauthn_timeout_ms: int = 60000
    user_handle_length: int = 64  # user.id is zero-padded to this width

    # Challenges
    challenge_ttl_seconds: int = 300
    challenge_cookie_name: str = "webauthn-binding"

    # Sessions
    session_secret_key: str = "change-me"
    session_algorithm: str = "HS256"
    session_ttl_minutes: int = 60
    bcrypt_rounds: int = 12

    # App
    app_name: str = "biometric-auth-backend"
    debug: bool = False
    environment: str = "development"  # development | staging | production
    log_level: str = "INFO"
    cors_origins: str = "http://localhost:3000,http://localhost:5173,http://127.0.0.1:3000,http://127.0.0.1:5173"
    rate_limit: str = "100/minute"  # slowapi format, e.g. "100/minute"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    def get_cors_origins_list(self) -> List[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        env_prefix="",  # No prefix needed
        extra="ignore"
    )


settings = Settings()
