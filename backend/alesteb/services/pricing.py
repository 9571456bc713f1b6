from decimal import Decimal
from datetime import datetime
from typing import Optional, Tuple, List, Set
from sqlmodel import Session, select, col
from alesteb.core.errors import NotFoundError
from alesteb.core.timeutils import utc_now
from alesteb.models.category import Category
from alesteb.models.product import Product
from alesteb.models.discount import Discount, DiscountType, TargetType

LOW_STOCK_THRESHOLD = 5
CENT = Decimal("0.01")


def get_active_discounts(db: Session, now: Optional[datetime] = None) -> List[Discount]:
    """Discounts whose window contains now"""
    now = now or utc_now()

    stmt = select(Discount).where(
        Discount.is_active == True,
        Discount.starts_at <= now,
        Discount.ends_at >= now,
    )

    return list(db.exec(stmt).all())


def get_applicable_discounts(product: Product, discounts: List[Discount]) -> List[Discount]:
    """Discounts targeting the product directly or through its category"""
    applicable = []

    for discount in discounts:
        for target in discount.targets:
            if target.target_type == TargetType.PRODUCT and target.target_id == product.id:
                applicable.append(discount)
                break
            if (
                target.target_type == TargetType.CATEGORY
                and product.category_id is not None
                and target.target_id == product.category_id
            ):
                applicable.append(discount)
                break

    return applicable


def calculate_discount(base_price: Decimal, discount: Discount) -> Decimal:
    """Price after applying the discount"""
    if discount.type == DiscountType.PERCENTAGE:
        final = base_price - base_price * (discount.value / 100)
    elif discount.type == DiscountType.FIXED:
        final = max(base_price - discount.value, Decimal("0"))
    else:
        final = base_price
    return final.quantize(CENT)


def select_best_discount(base_price: Decimal, discounts: List[Discount]) -> Optional[Discount]:
    """The discount giving the lowest final price; the first one wins ties"""
    best = None
    best_price = None

    for discount in discounts:
        new_price = calculate_discount(base_price, discount)
        if best_price is None or new_price < best_price:
            best_price = new_price
            best = discount

    return best


def apply_discounts(product: Product, discounts: List[Discount]) -> Tuple[Decimal, Optional[Discount]]:
    """
    Final price for the product given the active discounts.
    Returns (final_price, winning discount or None)
    """
    base_price = product.price
    best = select_best_discount(base_price, get_applicable_discounts(product, discounts))
    if best is None:
        return base_price, None
    return calculate_discount(base_price, best), best


def inventory_status(stock: int) -> str:
    if stock <= 0:
        return "out_of_stock"
    if stock <= LOW_STOCK_THRESHOLD:
        return "low_stock"
    return "in_stock"


def main_image_url(product: Product) -> Optional[str]:
    for img in product.images:
        if img.is_main:
            return img.url
    return None


def build_product_response(product: Product, discounts: List[Discount]) -> dict:
    """Product card with computed fields"""
    final_price, discount = apply_discounts(product, discounts)

    return {
        "id": product.id,
        "name": product.name,
        "description": product.description,
        "price": product.price,
        "final_price": final_price,
        "discount_value": discount.value if discount else None,
        "stock": product.stock,
        "inventory_status": inventory_status(product.stock),
        "category_id": product.category_id,
        "category_name": product.category.name if product.category else None,
        "main_image": main_image_url(product),
        "created_at": product.created_at,
    }


def build_product_detail_response(product: Product, discounts: List[Discount]) -> dict:
    """Product page: card plus the ordered image list"""
    base = build_product_response(product, discounts)
    _, discount = apply_discounts(product, discounts)

    base.update({
        "purchase_price": product.purchase_price,
        "discount_name": discount.name if discount else None,
        "discount_type": discount.type if discount else None,
        "images": [
            {
                "id": img.id,
                "url": img.url,
                "is_main": img.is_main,
                "sort_order": img.sort_order,
            }
            for img in sorted(product.images, key=lambda x: (x.sort_order, x.id))
        ],
    })

    return base


def collect_category_ids(db: Session, root: Category) -> Set[int]:
    """The category and all of its descendants"""
    category_ids = {root.id}
    frontier = [root.id]

    while frontier:
        children = db.exec(select(Category.id).where(col(Category.parent_id).in_(frontier))).all()
        frontier = [child_id for child_id in children if child_id not in category_ids]
        category_ids.update(frontier)

    return category_ids


def list_products(
    db: Session,
    category_slug: Optional[str] = None,
    search: Optional[str] = None,
    page: int = 1,
    page_size: int = 100,
) -> List[dict]:
    stmt = select(Product)

    if category_slug:
        category = db.exec(select(Category).where(Category.slug == category_slug)).first()
        if not category:
            return []
        stmt = stmt.where(col(Product.category_id).in_(collect_category_ids(db, category)))

    if search:
        pattern = f"%{search}%"
        stmt = stmt.where(
            (col(Product.name).ilike(pattern)) |
            (col(Product.description).ilike(pattern))
        )

    stmt = stmt.order_by(col(Product.created_at).desc(), col(Product.id).desc())
    stmt = stmt.offset((page - 1) * page_size).limit(page_size)
    products = db.exec(stmt).all()
    if not products:
        return []

    discounts = get_active_discounts(db)
    return [build_product_response(p, discounts) for p in products]


def get_product(db: Session, product_id: int) -> dict:
    product = db.get(Product, product_id)
    if not product:
        raise NotFoundError("Product")
    return build_product_detail_response(product, get_active_discounts(db))


def current_unit_price(db: Session, product: Product) -> Decimal:
    """Discounted price used when a sale does not carry its own"""
    final_price, _ = apply_discounts(product, get_active_discounts(db))
    return final_price
