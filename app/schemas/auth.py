from typing import Optional
from pydantic import BaseModel, EmailStr, Field

from app.models.users import UserRole


class TokenPayload(BaseModel):
    sub: Optional[str] = None
    type: Optional[str] = None


class Signup(BaseModel):
    name: str = Field(..., min_length=2)
    email: EmailStr
    password: str = Field(..., min_length=6)


class Login(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class LoginResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    role: UserRole
    redirect_to: str
    name: str
    email: str


class RefreshTokenRequest(BaseModel):
    refresh_token: str


class AccessTokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    role: UserRole


class LogoutRequest(BaseModel):
    refresh_token: Optional[str] = None
