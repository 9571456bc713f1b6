from .user import User, Role, Permission, UserRoleLink, RolePermissionLink
from .category import Category
from .product import Product, ProductImage
from .discount import Discount, DiscountTarget, DiscountType, TargetType
from .banner import Banner
from .sale import Sale, SaleItem, SaleType, PaymentStatus
from .provider import Provider, ProviderPayment
from .expense import Expense, ExpenseType
from .purchase_order import (
    PurchaseOrder, PurchaseOrderItem, PurchaseOrderStatus, PurchasePaymentMethod
)
from .invoice import Invoice, InvoiceItem, InvoicePayment, InvoiceType, InvoiceStatus
from .contact import ContactMessage

__all__ = [
    "User", "Role", "Permission", "UserRoleLink", "RolePermissionLink",
    "Category",
    "Product", "ProductImage",
    "Discount", "DiscountTarget", "DiscountType", "TargetType",
    "Banner",
    "Sale", "SaleItem", "SaleType", "PaymentStatus",
    "Provider", "ProviderPayment",
    "Expense", "ExpenseType",
    "PurchaseOrder", "PurchaseOrderItem", "PurchaseOrderStatus", "PurchasePaymentMethod",
    "Invoice", "InvoiceItem", "InvoicePayment", "InvoiceType", "InvoiceStatus",
    "ContactMessage",
]
