from .tenancy import Company
from .catalog import Product
from .orders import Order, OrderItem, OrderSequence, OrderStockEffect
from .alerts import Alert

__all__ = [
    'Company',
    'Product',
    'Order', 'OrderItem', 'OrderSequence', 'OrderStockEffect',
    'Alert',
]
