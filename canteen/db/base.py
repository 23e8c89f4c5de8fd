"""Shared SQLAlchemy base declarative class and model imports."""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for ORM models."""


# Import model modules so metadata is populated before create_all.
from canteen.models import menu as _menu  # noqa: E402,F401
from canteen.models import order as _order  # noqa: E402,F401
from canteen.models import outlet as _outlet  # noqa: E402,F401
from canteen.models import university as _university  # noqa: E402,F401
from canteen.models import user as _user  # noqa: E402,F401
