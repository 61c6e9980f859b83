import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from jose import JWTError, jwt

from app.config import Settings
from app.core.errors import IdentityNotFound, InvalidToken
from app.modules.auth.schemas import LoginRequest, RegisterRequest, RegisterResponse, TokenResponse
from app.modules.users.service import UserService

logger = logging.getLogger(__name__)

PASSWORD_AMR = ["pwd"]
BIOMETRIC_AMR = ["hwk", "user"]


class AuthService:
    """Password registration/login and session token issuance."""

    def __init__(self, users: UserService, settings: Settings):
        self.users = users
        self.settings = settings

    def register(self, register_data: RegisterRequest) -> RegisterResponse:
        """Register a new user"""
        user = self.users.create_user(register_data.name, register_data.email, register_data.password)
        return RegisterResponse(
            user_id=user.id,
            name=user.name,
            email=user.email,
            message="User registered successfully"
        )

    def login(self, login_data: LoginRequest) -> TokenResponse:
        """Authenticate with email and password"""
        user = self.users.authenticate(login_data.email, login_data.password)
        return self.issue_session(user, amr=PASSWORD_AMR)

    def issue_session(self, identity: Any, amr: Optional[List[str]] = None) -> TokenResponse:
        """Sign an access token for an identity that has already been verified."""
        now = datetime.now(timezone.utc)
        ttl = timedelta(minutes=self.settings.session_ttl_minutes)
        claims = {
            "sub": str(identity.id),
            "name": identity.name,
            "email": identity.email,
            "amr": amr or BIOMETRIC_AMR,
            "iat": int(now.timestamp()),
            "exp": int((now + ttl).timestamp()),
        }
        token = jwt.encode(claims, self.settings.session_secret_key, algorithm=self.settings.session_algorithm)
        logger.info(f"Session issued for user {identity.id} ({'+'.join(claims['amr'])})")
        return TokenResponse(
            access_token=token,
            token_type="bearer",
            expires_in=int(ttl.total_seconds()),
            user_id=identity.id,
            name=identity.name,
            email=identity.email,
        )

    def decode_token(self, token: str) -> Dict[str, Any]:
        try:
            return jwt.decode(token, self.settings.session_secret_key, algorithms=[self.settings.session_algorithm])
        except JWTError as e:
            logger.info(f"Rejected access token: {e}")
            raise InvalidToken() from e

    def get_current_user(self, token: str) -> Dict[str, Any]:
        """Resolve a bearer token to the user it was issued for"""
        claims = self.decode_token(token)
        try:
            user_id = int(claims["sub"])
        except (KeyError, ValueError) as e:
            raise InvalidToken() from e
        try:
            user = self.users.get_user_by_id(user_id)
        except IdentityNotFound as e:
            raise InvalidToken() from e
        return {
            "id": user.id,
            "name": user.name,
            "email": user.email,
            "amr": claims.get("amr", []),
        }

