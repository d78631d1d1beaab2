from fastapi import APIRouter
from app.core.config import settings
from app.schemas.pricing import PricingConfig, PriceQuote, PriceQuoteRequest
from app.services.pricing import quote

router = APIRouter()

@router.get("", response_model=PricingConfig)
async def get_pricing():
    """Material table and size coefficients the storefront form prices with."""
    return settings.PRICING

@router.post("/quote", response_model=PriceQuote)
async def get_quote(body: PriceQuoteRequest):
    result = quote(body.height, body.width, body.material, settings.PRICING)
    if result.price is not None:
        result.price = round(result.price, 2)
    return result
