import logging
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from app.api import deps
from app.core.errors import CatalogError, ErrorStage
from app.core.event_log import EventLog
from app.schemas.variant import CreateVariantRequest, ProvisionedVariant
from app.services.cart import build_cart_item
from app.services.provisioner import VariantProvisioner

logger = logging.getLogger(__name__)

router = APIRouter()

# Standard error messages
SERVER_ERROR = "Server error while creating the temporary variant"

@router.post("/create-variant", response_model=ProvisionedVariant, response_model_exclude_none=True)
async def create_variant(
    body: CreateVariantRequest,
    provisioner: VariantProvisioner = Depends(deps.get_provisioner),
    event_log: EventLog = Depends(deps.get_event_log),
):
    """
    Return a temporary variant for the requested dimensions, reusing an
    existing one when the signature matches, plus the cart line to add.
    """
    try:
        result = await provisioner.provision(
            body.product_id,
            body.height,
            body.width,
            body.material_label,
            body.calculated_price,
        )
    except CatalogError:
        raise
    except Exception as e:
        logger.exception("Unexpected error while creating variant")
        event_log.error("create_variant_error", message=str(e), errorType=type(e).__name__)
        event_log.check_error_alarm()
        return JSONResponse(
            status_code=500,
            content={"success": False, "error": str(e) or SERVER_ERROR, "errorStage": ErrorStage.UNKNOWN.value},
        )

    if result.variant_id:
        result.cart_item = build_cart_item(
            result.variant_id,
            body.height,
            body.width,
            body.material_label,
            body.calculated_price,
        )
    return result
