from typing import Any, Optional
from app.schemas.pricing import PricingConfig, PriceQuote, positive_number

DEFAULT_PRICING = PricingConfig()


def area_in_square_meters(height_cm: float, width_cm: float) -> float:
    return (height_cm * width_cm) / 10000


def size_coefficient(area: float, config: PricingConfig = DEFAULT_PRICING) -> float:
    """First breakpoint whose upper bound covers the area; 1 if none does."""
    for row in config.size_coefficients:
        if row.max_area is None or area <= row.max_area:
            return row.coefficient
    return 1.0


def quote(height: Any, width: Any, material: Optional[str], config: PricingConfig = DEFAULT_PRICING) -> PriceQuote:
    height_cm = positive_number(height)
    width_cm = positive_number(width)
    material_price = config.materials.get(material) if material else None
    if height_cm is None or width_cm is None or material_price is None:
        return PriceQuote(available=False, material=material)

    area = area_in_square_meters(height_cm, width_cm)
    coefficient = size_coefficient(area, config)
    return PriceQuote(
        available=True,
        price=area * material_price.base_price * coefficient,
        area=area,
        coefficient=coefficient,
        material=material,
    )


def compute_price(height: Any, width: Any, material: Optional[str], config: PricingConfig = DEFAULT_PRICING) -> Optional[float]:
    """
    Price for a custom-size item, or None when it cannot be shown.

    Heights and widths are centimeters and may arrive as raw form strings;
    anything non-numeric or not strictly positive, and any material missing
    from the table, makes the price unavailable.
    """
    return quote(height, width, material, config).price


def format_price(price: float) -> str:
    return f"{price:.2f}"
