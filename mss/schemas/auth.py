import datetime
import re

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel

from mss.models.user import Role

_PASSWORD_RE = re.compile(r"^(?=.*[a-zA-Z])(?=.*\d).{6,}$")
_PASSWORD_RULE = "Password must be at least 6 characters long and contain at least one letter and one number."


def _check_password(value: str) -> str:
    if not _PASSWORD_RE.match(value):
        raise ValueError(_PASSWORD_RULE)
    return value


# JSON bodies use camelCase keys (accessToken, mobileNumber, ...)
class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RegisterRequest(CamelModel):
    firstname: str = Field(min_length=1, max_length=100)
    lastname: str = Field(min_length=1, max_length=100)
    email: EmailStr
    password: str
    role: Role = Role.USER
    mobile_number: str = Field(min_length=1, max_length=30)
    date_of_birth: datetime.date | None = None
    address: str | None = None
    image_url: str | None = None

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        return _check_password(v)


class AuthenticationRequest(CamelModel):
    email: EmailStr
    password: str = Field(min_length=1)


class TokenPair(CamelModel):
    access_token: str
    refresh_token: str


class VerifyUserRequest(CamelModel):
    email: EmailStr
    verification_code: str = Field(min_length=1, max_length=16)


class EmailRequest(CamelModel):
    email: EmailStr


class PasswordResetRequest(CamelModel):
    new_password: str
    repeat_new_password: str

    @field_validator("new_password")
    @classmethod
    def validate_new_password(cls, v: str) -> str:
        return _check_password(v)


class PasswordChangeRequest(CamelModel):
    password: str = Field(min_length=1)
    new_password: str
    repeat_new_password: str

    @field_validator("new_password")
    @classmethod
    def validate_new_password(cls, v: str) -> str:
        return _check_password(v)
