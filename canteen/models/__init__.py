"""Application models package."""

from canteen.models.menu import MenuItem
from canteen.models.order import Order, OrderItem
from canteen.models.outlet import Outlet
from canteen.models.university import University
from canteen.models.user import FavoriteItem, User

__all__ = ["University", "Outlet", "MenuItem", "User", "FavoriteItem", "Order", "OrderItem"]
