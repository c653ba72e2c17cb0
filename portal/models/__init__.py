from portal.models.order import Order
from portal.models.product import Product
from portal.models.settings_record import SettingsRecord

__all__ = ["Order", "Product", "SettingsRecord"]
