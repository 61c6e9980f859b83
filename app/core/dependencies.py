"""
Core dependencies: settings, store-backed services and bearer-token protection
"""

from fastapi import Depends, Request, Security
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from app.config import Settings, settings as app_settings
from app.database.supabase_client import get_supabase
from app.modules.auth.service import AuthService
from app.modules.challenges.service import ChallengeManager
from app.modules.challenges.transport import ChallengeCookie
from app.modules.credentials.service import CredentialStore
from app.modules.users.service import UserService
from supabase import Client
import logging

logger = logging.getLogger(__name__)

security = HTTPBearer()


def get_settings() -> Settings:
    return app_settings


def get_user_service(
    supabase: Client = Depends(get_supabase),
    settings: Settings = Depends(get_settings)
) -> UserService:
    return UserService(supabase, bcrypt_rounds=settings.bcrypt_rounds)


def get_credential_store(supabase: Client = Depends(get_supabase)) -> CredentialStore:
    return CredentialStore(supabase)


def get_challenge_manager(
    supabase: Client = Depends(get_supabase),
    settings: Settings = Depends(get_settings)
) -> ChallengeManager:
    return ChallengeManager(supabase, ttl_seconds=settings.challenge_ttl_seconds)


def get_challenge_cookie(settings: Settings = Depends(get_settings)) -> ChallengeCookie:
    return ChallengeCookie(settings)


def get_auth_service(
    users: UserService = Depends(get_user_service),
    settings: Settings = Depends(get_settings)
) -> AuthService:
    return AuthService(users, settings)


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Security(security),
    auth_service: AuthService = Depends(get_auth_service)
) -> dict:
    """Extract current user info from the bearer token"""
    return auth_service.get_current_user(credentials.credentials)


def resolve_rp_id(request: Request, settings: Settings) -> str:
    """Relying party id: configured value, else the host the browser talked to."""
    if settings.rp_id:
        return settings.rp_id
    host = request.headers.get("host", "")
    return host.split(":")[0] or "localhost"
