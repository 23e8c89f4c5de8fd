"""Authentication-related request and response schemas."""

from pydantic import BaseModel, ConfigDict, Field


class RegisterRequest(BaseModel):
    """Payload for student registration."""

    full_name: str = Field(min_length=2, max_length=255)
    email: str = Field(min_length=3, max_length=255)
    password: str = Field(min_length=6, max_length=72)
    phone: str | None = None
    university_id: int | None = None


class LoginRequest(BaseModel):
    """Payload for student or outlet admin login."""

    email: str
    password: str


class TokenResponse(BaseModel):
    """JWT response payload."""

    access_token: str
    token_type: str = "bearer"


class StudentResponse(BaseModel):
    """Student account as returned by auth endpoints."""

    id: int
    full_name: str
    email: str
    university_id: int | None = None

    model_config = ConfigDict(from_attributes=True)


class OutletLoginResponse(TokenResponse):
    """Admin login response with the authenticated outlet."""

    outlet_id: int
    outlet_name: str


class FavoriteRead(BaseModel):
    """How many completed orders contained a menu item."""

    menu_item_id: int
    order_count: int

    model_config = ConfigDict(from_attributes=True)
