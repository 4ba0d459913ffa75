"""Authentication endpoints — register, login.

The wire format accepts both the English and the German field names used
by the app's clients; everything past this module sees only the canonical
names (username, password, email, age, gender, height).
"""

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from bodycomp.core.credentials import CredentialService
from bodycomp.routes.deps import get_credentials

router = APIRouter(tags=["Auth"])


class RegisterRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    username: str = Field(
        ..., min_length=1, max_length=100,
        validation_alias=AliasChoices("username", "benutzername", "identifier"),
    )
    password: str = Field(
        ..., min_length=1, max_length=1024,
        validation_alias=AliasChoices("password", "passwort", "secret"),
    )
    email: str = Field(..., min_length=1, max_length=255)
    age: Optional[int] = Field(None, validation_alias=AliasChoices("age", "alter"))
    gender: Optional[str] = Field(None, validation_alias=AliasChoices("gender", "geschlecht"))
    height: Optional[float] = Field(None, validation_alias=AliasChoices("height", "groesse"))


class LoginRequest(BaseModel):
    username: str = Field(
        ..., min_length=1,
        validation_alias=AliasChoices("username", "benutzername", "identifier", "email"),
    )
    password: str = Field(
        ..., min_length=1,
        validation_alias=AliasChoices("password", "passwort", "secret"),
    )


class MessageResponse(BaseModel):
    message: str


class LoginResponse(BaseModel):
    message: str
    token: str
    userId: int
    username: str


@router.post("/register", response_model=MessageResponse, status_code=201)
async def register(
    body: RegisterRequest,
    credentials: CredentialService = Depends(get_credentials),
):
    """Create a new account."""
    await credentials.register(
        body.username, body.password, body.email,
        age=body.age, gender=body.gender, height=body.height,
    )
    return MessageResponse(message="Registration successful.")


@router.post("/login", response_model=LoginResponse)
async def login(
    body: LoginRequest,
    credentials: CredentialService = Depends(get_credentials),
):
    """Authenticate with username (or e-mail) + password, receive a JWT."""
    result = await credentials.login(body.username, body.password)
    return LoginResponse(
        message="Login successful.",
        token=result.token,
        userId=result.account.id,
        username=result.account.username,
    )
