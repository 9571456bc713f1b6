from .category import CategoryResponse
from .product import ProductResponse, ProductDetailResponse, ProductImageResponse

__all__ = [
    "CategoryResponse",
    "ProductResponse", "ProductDetailResponse", "ProductImageResponse",
]
