"""University schemas."""

from pydantic import BaseModel, ConfigDict


class UniversityRead(BaseModel):
    """Campus as shown to students choosing where they study."""

    id: int
    name: str
    code: str
    email_domain: str
    city: str | None = None

    model_config = ConfigDict(from_attributes=True)
