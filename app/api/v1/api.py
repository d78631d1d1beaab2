from fastapi import APIRouter, Depends
from app.api.v1.endpoints import variant, cleanup, logs, pricing
from app.api import deps

api_router = APIRouter(dependencies=[Depends(deps.verify_app_proxy)])

api_router.include_router(variant.router, tags=["variants"])

# Called by the external scheduler
api_router.include_router(cleanup.router, tags=["cleanup"])

api_router.include_router(logs.router, tags=["logs"])

api_router.include_router(pricing.router, prefix="/pricing", tags=["pricing"])
