import math
from datetime import datetime
from typing import Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field, validator
from app.core.event_log import parse_timestamp
from app.schemas.pricing import positive_number

METAFIELD_NAMESPACE = "custom"
TEMPORARY_KEY = "temporary"
CREATED_AT_KEY = "created_at"
DELETE_AT_KEY = "delete_at"
DIMENSIONS_KEY = "dimensions"

class Metafield(BaseModel):
    namespace: str = METAFIELD_NAMESPACE
    key: str
    type: str = "single_line_text_field"
    value: str

class CatalogVariant(BaseModel):
    """A product variant as read back from the catalog, with its custom metadata."""
    id: str
    legacy_resource_id: Optional[str] = None
    display_name: Optional[str] = None
    title: Optional[str] = None
    price: Optional[str] = None
    product_id: Optional[str] = None
    metadata: Dict[str, str] = {}

    @property
    def is_temporary(self) -> bool:
        return self.metadata.get(TEMPORARY_KEY) == "true"

    @property
    def dimension_signature(self) -> Optional[str]:
        return self.metadata.get(DIMENSIONS_KEY)

    @property
    def created_at(self) -> Optional[datetime]:
        return parse_timestamp(self.metadata.get(CREATED_AT_KEY))

    @property
    def delete_at(self) -> Optional[datetime]:
        return parse_timestamp(self.metadata.get(DELETE_AT_KEY))

    @property
    def name(self) -> str:
        return self.display_name or self.title or self.id

class VariantDraft(BaseModel):
    price: float
    option_name: str
    option_value: str
    inventory_policy: str = "CONTINUE"
    metafields: List[Metafield] = []

class CreateVariantRequest(BaseModel):
    """Body posted by the storefront form; accepts the form's field names or plain ones."""
    model_config = ConfigDict(populate_by_name=True)

    product_id: str | int = Field(..., alias="productId")
    calculated_price: str | float = Field(..., alias="calculatedPrice")
    material_label: str = Field(..., alias="materyalLabel", min_length=1)
    height: str | float = Field(..., alias="boy")
    width: str | float = Field(..., alias="en")

    @validator("height", "width")
    def positive_dimension(cls, v: str | float) -> str | float:
        if positive_number(v) is None:
            raise ValueError("must be a positive number of centimeters")
        return v

    @validator("calculated_price")
    def valid_price(cls, v: str | float) -> str | float:
        try:
            price = float(v)
        except (TypeError, ValueError):
            raise ValueError("must be a number")
        if not math.isfinite(price) or price < 0:
            raise ValueError("must be a non-negative number")
        return v

class CartItem(BaseModel):
    id: str
    quantity: int = 1
    properties: Dict[str, str] = {}

class ProvisionedVariant(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    reused: bool
    variant_id: Optional[str] = Field(None, alias="variantId")
    variant_gid: str = Field(..., alias="variantGid")
    title: Optional[str] = None
    price: Optional[str] = None
    delete_at: Optional[str] = Field(None, alias="deleteAt")
    created_at: Optional[str] = Field(None, alias="createdAt")
    cart_item: Optional[CartItem] = Field(None, alias="cartItem")
