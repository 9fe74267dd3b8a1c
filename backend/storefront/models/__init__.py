from .users import User, UserAddress, UserContactPhone, Admin, SessionToken
from .catalog import ProductCategory, Product, ProductDiscount, ProductStats, InventoryLog
from .orders import Cart, CartItem, Order, OrderItem, Payment
from .vouchers import Voucher, UserVoucher, OrderVoucher
from .reviews import Review
from .wishlist import Wishlist, WishlistItem

__all__ = [
    'User', 'UserAddress', 'UserContactPhone', 'Admin', 'SessionToken',
    'ProductCategory', 'Product', 'ProductDiscount', 'ProductStats', 'InventoryLog',
    'Cart', 'CartItem', 'Order', 'OrderItem', 'Payment',
    'Voucher', 'UserVoucher', 'OrderVoucher',
    'Review',
    'Wishlist', 'WishlistItem',
]
