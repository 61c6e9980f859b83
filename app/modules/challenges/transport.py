"""Client-held channel carrying the challenge binding token between requests."""
from typing import Optional

from fastapi import Request, Response

from app.config import Settings


class ChallengeCookie:
    def __init__(self, settings: Settings):
        self.name = settings.challenge_cookie_name
        self.ttl_seconds = settings.challenge_ttl_seconds
        self.secure = settings.is_production

    def store(self, response: Response, value: str, ttl: Optional[int] = None) -> None:
        response.set_cookie(
            key=self.name,
            value=value,
            max_age=ttl if ttl is not None else self.ttl_seconds,
            httponly=True,
            secure=self.secure,
            samesite="strict",
            path="/",
        )

    def read(self, request: Request) -> Optional[str]:
        return request.cookies.get(self.name) or None

    def clear(self, response: Response) -> None:
        response.delete_cookie(
            key=self.name,
            path="/",
            httponly=True,
            secure=self.secure,
            samesite="strict",
        )
