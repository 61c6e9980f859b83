from pydantic import BaseModel, EmailStr
from typing import List


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user_id: int
    name: str
    email: str


class RegisterRequest(BaseModel):
    name: str
    email: EmailStr
    password: str


class RegisterResponse(BaseModel):
    user_id: int
    name: str
    email: str
    message: str


class CurrentUserResponse(BaseModel):
    id: int
    name: str
    email: str
    amr: List[str] = []
