import datetime

from pydantic import ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel

from mss.models.user import Role
from mss.schemas.auth import CamelModel


# current user, as the frontend keeps it in local storage
class UserResponse(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: int
    firstname: str
    lastname: str
    email: str
    role: Role
    image_url: str | None = None


class UserDetails(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: int
    firstname: str
    lastname: str
    email: str
    mobile_number: str | None = None
    date_of_birth: datetime.date | None = None
    address: str | None = None
    image_url: str | None = None
    role: Role
    enabled: bool
    is_deleted: bool
    created_at: datetime.datetime
    updated_at: datetime.datetime


"""
Profile update body

- shared by the self-service update and the admin update
- isDeleted is honoured only by the admin update (soft delete / restore)

"""

class UserUpdateRequest(CamelModel):
    firstname: str = Field(min_length=1, max_length=100)
    lastname: str = Field(min_length=1, max_length=100)
    email: EmailStr
    mobile_number: str | None = Field(default=None, max_length=30)
    date_of_birth: datetime.date | None = None
    address: str | None = Field(default=None, max_length=255)
    image_url: str | None = Field(default=None, max_length=512)
    is_deleted: bool | None = None


class UserFiltersQuery(CamelModel):
    full_name: str | None = None
    address: str | None = None
    email: str | None = None
    phone_number: str | None = None
    is_deleted: bool = False
