import math
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field, validator

def positive_number(value: Any) -> Optional[float]:
    """Parse a dimension as a finite number above zero, or None."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number) or number <= 0:
        return None
    return number

class MaterialPrice(BaseModel):
    label: str
    base_price: float = Field(..., ge=0)

class SizeCoefficient(BaseModel):
    # None means the row has no upper bound
    max_area: Optional[float] = None
    coefficient: float = Field(..., gt=0)

def default_materials() -> Dict[str, MaterialPrice]:
    return {
        "wood": MaterialPrice(label="Wood", base_price=50),
        "metal": MaterialPrice(label="Metal", base_price=120),
        "plastic": MaterialPrice(label="Plastic", base_price=30),
    }

def default_size_coefficients() -> List[SizeCoefficient]:
    return [
        SizeCoefficient(max_area=0.5, coefficient=1.0),
        SizeCoefficient(max_area=1.0, coefficient=1.1),
        SizeCoefficient(max_area=2.0, coefficient=1.2),
        SizeCoefficient(max_area=None, coefficient=1.3),
    ]

class PricingConfig(BaseModel):
    """Material price table and area breakpoints used by the price calculator."""
    materials: Dict[str, MaterialPrice] = Field(default_factory=default_materials)
    size_coefficients: List[SizeCoefficient] = Field(default_factory=default_size_coefficients)

    @validator("size_coefficients")
    def sort_breakpoints(cls, v: List[SizeCoefficient]) -> List[SizeCoefficient]:
        return sorted(v, key=lambda row: float("inf") if row.max_area is None else row.max_area)

class PriceQuoteRequest(BaseModel):
    height: Optional[str | float] = None
    width: Optional[str | float] = None
    material: Optional[str] = None

class PriceQuote(BaseModel):
    success: bool = True
    available: bool
    price: Optional[float] = None
    area: Optional[float] = None
    coefficient: Optional[float] = None
    material: Optional[str] = None
