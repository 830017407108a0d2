from .auth import User, SessionToken
from .security import SecurityEvent
from .catalog import Vendor, Brand, Category, Product
from .locations import Warehouse, Outlet
from .inventory import StockLot
from .counters import DocumentCounter
from .customers import Customer
from .discounts import Discount
from .sales import Sale, SaleLine, SaleAllocation, SalePayment
from .orders import Order, OrderLine, OrderAllocation, OrderPayment
from .demand import Demand, DemandLine

__all__ = [
    'User', 'SessionToken', 'SecurityEvent',
    'Vendor', 'Brand', 'Category', 'Product',
    'Warehouse', 'Outlet', 'StockLot', 'DocumentCounter',
    'Customer', 'Discount',
    'Sale', 'SaleLine', 'SaleAllocation', 'SalePayment',
    'Order', 'OrderLine', 'OrderAllocation', 'OrderPayment',
    'Demand', 'DemandLine',
]
