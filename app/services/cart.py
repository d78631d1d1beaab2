from typing import Any
from app.schemas.variant import CartItem
from app.services.pricing import format_price
from app.services.provisioner import format_dimension


def build_cart_item(variant_id: str, height: Any, width: Any, material_label: str, price: Any) -> CartItem:
    """Line item the storefront posts to its cart after a variant is provisioned."""
    return CartItem(
        id=str(variant_id),
        quantity=1,
        properties={
            "Height": f"{format_dimension(height)} cm",
            "Width": f"{format_dimension(width)} cm",
            "Material": material_label,
            "Price": f"${format_price(float(price))}",
        },
    )
