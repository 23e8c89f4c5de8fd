"""Outlet browsing schemas."""

from datetime import time

from pydantic import BaseModel, ConfigDict


class OutletRead(BaseModel):
    id: int
    university_id: int
    name: str
    slug: str | None = None
    cuisine_type: str | None = None
    description: str | None = None
    opens_at: time
    closes_at: time
    is_open: bool

    model_config = ConfigDict(from_attributes=True)


class MenuItemRead(BaseModel):
    id: int
    name: str
    description: str | None = None
    price: int
    category: str
    prep_time: int
    is_veg: bool

    model_config = ConfigDict(from_attributes=True)


class OutletMenuResponse(BaseModel):
    """Outlet with its currently available items grouped by category."""

    outlet: OutletRead
    categories: dict[str, list[MenuItemRead]]


class OutletStatusResponse(BaseModel):
    is_open: bool
    message: str
