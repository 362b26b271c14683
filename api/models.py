"""
API request and response models for OrgAccess REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py, which
own the internal domain representation. Route handlers map between the two.

Wire names are camelCase (userId, firstName, orgId, accessToken). Python
attribute names stay snake_case; each model declares the alias and
populate_by_name so either form is accepted on input. FastAPI serializes
response_model output by alias.

Separation of concerns: auth/ models = domain truth; api/ models = API contract.
"""

import re
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from auth.models import Organisation, User

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

# At least one digit, one lowercase letter, one uppercase letter, one
# non-word character, and no spaces.
_PASSWORD_RULES = re.compile(r"^(?=.*[0-9])(?=.*[a-z])(?=.*[A-Z])(?=.*\W)(?!.* ).{8,}$")

_PASSWORD_MESSAGE = (
    "password must contain at least one number, one lowercase and one uppercase letter, "
    "one special character and at least 8 characters"
)

# bcrypt hashes at most 72 bytes of input and rejects anything longer.
_PASSWORD_MAX_BYTES = 72


def _check_password_bytes(value: str) -> str:
    if len(value.encode("utf-8")) > _PASSWORD_MAX_BYTES:
        raise ValueError(f"password must be at most {_PASSWORD_MAX_BYTES} bytes when UTF-8 encoded")
    return value


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class RegisterRequest(BaseModel):
    """Request body for POST /auth/register."""

    model_config = ConfigDict(str_strip_whitespace=True, populate_by_name=True)

    first_name: str = Field(alias="firstName", min_length=1, max_length=255)
    last_name: str = Field(alias="lastName", min_length=1, max_length=255)
    email: EmailStr
    password: str = Field(min_length=8, max_length=72)
    phone: Optional[str] = Field(default=None, max_length=50)

    @field_validator("password")
    @classmethod
    def check_password_rules(cls, value: str) -> str:
        if not _PASSWORD_RULES.match(value):
            raise ValueError(_PASSWORD_MESSAGE)
        return _check_password_bytes(value)


class LoginRequest(BaseModel):
    """Request body for POST /auth/login."""

    email: EmailStr
    password: str = Field(min_length=8, max_length=72)

    @field_validator("password")
    @classmethod
    def check_password_length(cls, value: str) -> str:
        return _check_password_bytes(value)


class OrganisationCreate(BaseModel):
    """Request body for POST /api/organisations."""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=1, max_length=255)
    description: str = Field(min_length=1, max_length=2000)


class MemberAdd(BaseModel):
    """Request body for POST /api/organisations/{orgId}/users."""

    model_config = ConfigDict(str_strip_whitespace=True, populate_by_name=True)

    user_id: str = Field(alias="userId", min_length=1, max_length=36)


# ---------------------------------------------------------------------------
# Resource representations
# ---------------------------------------------------------------------------


class UserOut(BaseModel):
    """Public view of a user. The password hash is never included."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    user_id: str = Field(alias="userId")
    first_name: str = Field(alias="firstName")
    last_name: str = Field(alias="lastName")
    email: str
    phone: Optional[str] = None

    @classmethod
    def from_user(cls, user: User) -> "UserOut":
        return cls(
            user_id=user.user_id,
            first_name=user.first_name,
            last_name=user.last_name,
            email=user.email,
            phone=user.phone,
        )


class OrganisationOut(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    org_id: str = Field(alias="orgId")
    name: str
    description: str

    @classmethod
    def from_organisation(cls, org: Organisation) -> "OrganisationOut":
        return cls(org_id=org.org_id, name=org.name, description=org.description)


# ---------------------------------------------------------------------------
# Response envelopes
# ---------------------------------------------------------------------------


class AuthData(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    access_token: str = Field(alias="accessToken")
    user: UserOut


class AuthResponse(BaseModel):
    """Response for POST /auth/register and POST /auth/login."""

    model_config = ConfigDict(frozen=True)

    status: str = "success"
    message: str
    data: AuthData


class UserData(BaseModel):
    model_config = ConfigDict(frozen=True)

    user: UserOut


class UserResponse(BaseModel):
    """Response for GET /api/users/{id}."""

    model_config = ConfigDict(frozen=True)

    status: str = "success"
    message: str = "User found"
    data: UserData


class UserListData(BaseModel):
    model_config = ConfigDict(frozen=True)

    users: list[UserOut]


class UserListResponse(BaseModel):
    """Response for GET /api/organisations/{orgId}/users."""

    model_config = ConfigDict(frozen=True)

    status: str = "success"
    message: str = "Users found"
    data: UserListData


class OrganisationData(BaseModel):
    model_config = ConfigDict(frozen=True)

    organisation: OrganisationOut


class OrganisationResponse(BaseModel):
    """Response for GET and POST of a single organisation."""

    model_config = ConfigDict(frozen=True)

    status: str = "success"
    message: str
    data: OrganisationData


class OrganisationListData(BaseModel):
    model_config = ConfigDict(frozen=True)

    organisations: list[OrganisationOut]


class OrganisationListResponse(BaseModel):
    """Response for GET /api/organisations."""

    model_config = ConfigDict(frozen=True)

    status: str = "success"
    message: str = "Organisations found"
    data: OrganisationListData


class MessageResponse(BaseModel):
    """Body-less success, e.g. POST /api/organisations/{orgId}/users."""

    model_config = ConfigDict(frozen=True)

    status: str = "success"
    message: str


# ---------------------------------------------------------------------------
# Errors and health
# ---------------------------------------------------------------------------


class FieldErrorOut(BaseModel):
    model_config = ConfigDict(frozen=True)

    field: str
    message: str


class ErrorDetail(BaseModel):
    """Machine-readable error payload.

    code is stable and meant for programs; message is for humans. errors lists
    per-field problems for validation and conflict failures.
    """

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None
    errors: list[FieldErrorOut] = Field(default_factory=list)


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /health."""

    model_config = ConfigDict(frozen=True)

    status: str
    version: str
    components: dict[str, str]
