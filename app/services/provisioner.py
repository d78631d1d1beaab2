"""
Temporary variant provisioning.

A request for (product, height, width, material) resolves to exactly one
temporary variant: an existing one whose dimension signature matches, or a
new one created under a short-lived reservation so that concurrent identical
requests do not both create.
"""
import asyncio
import logging
from datetime import datetime, timedelta
from typing import Any, Callable, Optional, Tuple
from app.core.cache import InMemoryReservationLock, ReservationLock, reservation_key
from app.core.errors import CatalogError, ReservationConflictError
from app.core.event_log import EventLog, isoformat, utcnow
from app.core.shopify_client import to_product_gid
from app.schemas.variant import (
    CREATED_AT_KEY,
    DELETE_AT_KEY,
    DIMENSIONS_KEY,
    TEMPORARY_KEY,
    CatalogVariant,
    Metafield,
    ProvisionedVariant,
    VariantDraft,
)
from app.services.metadata_store import VariantStore

logger = logging.getLogger(__name__)

RETENTION_WINDOW = timedelta(hours=2)


def format_dimension(value: Any) -> str:
    """Render a dimension the way the storefront sends it: 80, 80.5, or the raw string."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def build_dimension_signature(height: Any, width: Any, material_label: str) -> str:
    # Used as the variant title and as the reuse key; changing it breaks reuse
    return f"{format_dimension(height)}cm × {format_dimension(width)}cm - {material_label}"


def lifecycle_metafields(signature: str, created_at: datetime, delete_at: datetime) -> list:
    return [
        Metafield(key=TEMPORARY_KEY, type="boolean", value="true"),
        Metafield(key=CREATED_AT_KEY, type="date_time", value=isoformat(created_at)),
        Metafield(key=DELETE_AT_KEY, type="date_time", value=isoformat(delete_at)),
        Metafield(key=DIMENSIONS_KEY, type="single_line_text_field", value=signature),
    ]


class VariantProvisioner:
    def __init__(
        self,
        store: VariantStore,
        event_log: EventLog,
        lock: Optional[ReservationLock] = None,
        clock: Callable[[], datetime] = utcnow,
        retention: timedelta = RETENTION_WINDOW,
        scan_limit: int = 100,
        reservation_ttl: float = 30,
        reservation_wait: float = 5.0,
        poll_interval: float = 0.5,
    ):
        self.store = store
        self.event_log = event_log
        self.lock = lock or InMemoryReservationLock()
        self.clock = clock
        self.retention = retention
        self.scan_limit = scan_limit
        self.reservation_ttl = reservation_ttl
        self.reservation_wait = reservation_wait
        self.poll_interval = poll_interval

    async def find_reusable(self, product_gid: str, signature: str) -> Optional[CatalogVariant]:
        """First temporary variant of the product carrying this exact signature."""
        variants = await self.store.list_product_variants(product_gid, self.scan_limit)
        for variant in variants:
            if variant.is_temporary and variant.dimension_signature == signature:
                return variant
        return None

    async def provision(
        self,
        product_id: Any,
        height: Any,
        width: Any,
        material_label: str,
        price: Any,
    ) -> ProvisionedVariant:
        product_gid = to_product_gid(product_id)
        signature = build_dimension_signature(height, width, material_label)
        self.event_log.info(
            "create_variant_started",
            productId=product_gid,
            dimensions=signature,
            price=str(price),
        )
        try:
            return await self._provision(product_gid, signature, float(price))
        except CatalogError as e:
            self.event_log.error(
                "create_variant_failed",
                productId=product_gid,
                dimensions=signature,
                errorType=type(e).__name__,
                errorStage=e.stage.value,
                message=e.message,
                errors=e.details,
            )
            self.event_log.check_error_alarm()
            raise

    async def _provision(self, product_gid: str, signature: str, price: float) -> ProvisionedVariant:
        existing = await self.find_reusable(product_gid, signature)
        if existing:
            return self._reused(product_gid, signature, existing)

        self.event_log.info("variant_reuse_not_found", productId=product_gid, dimensions=signature)

        key = reservation_key(product_gid, signature)
        token = await self.lock.acquire(key, self.reservation_ttl)
        if token is None:
            existing, token = await self._wait_for_holder(product_gid, signature, key)
            if existing:
                return self._reused(product_gid, signature, existing)

        try:
            # Another request may have finished creating while we were listing
            existing = await self.find_reusable(product_gid, signature)
            if existing:
                return self._reused(product_gid, signature, existing)

            option_name = await self.store.get_first_option_name(product_gid)
            created_at = self.clock()
            delete_at = created_at + self.retention
            draft = VariantDraft(
                price=price,
                option_name=option_name,
                option_value=signature,
                metafields=lifecycle_metafields(signature, created_at, delete_at),
            )
            variant = await self.store.create_variant(product_gid, draft)
        finally:
            await self.lock.release(key, token)

        self.event_log.info(
            "variant_created",
            productId=product_gid,
            variantId=variant.legacy_resource_id,
            variantGid=variant.id,
            dimensions=signature,
            price=variant.price,
            createdAt=isoformat(created_at),
        )
        return ProvisionedVariant(
            reused=False,
            variant_id=variant.legacy_resource_id,
            variant_gid=variant.id,
            title=variant.display_name or variant.title,
            price=variant.price if variant.price is not None else f"{price:.2f}",
            created_at=isoformat(created_at),
            delete_at=isoformat(delete_at),
        )

    async def _wait_for_holder(self, product_gid: str, signature: str, key: str) -> Tuple[Optional[CatalogVariant], Any]:
        """Poll until the holder's variant appears or its reservation frees up.

        Returns ``(variant, None)`` when the holder created it, or
        ``(None, token)`` when the holder gave up and this request now owns
        the reservation.
        """
        self.event_log.info("variant_reservation_busy", productId=product_gid, dimensions=signature)
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.reservation_wait
        while loop.time() < deadline:
            await asyncio.sleep(self.poll_interval)
            existing = await self.find_reusable(product_gid, signature)
            if existing:
                return existing, None
            token = await self.lock.acquire(key, self.reservation_ttl)
            if token is not None:
                self.event_log.info("variant_reservation_taken_over", productId=product_gid, dimensions=signature)
                return None, token
        raise ReservationConflictError()

    def _reused(self, product_gid: str, signature: str, variant: CatalogVariant) -> ProvisionedVariant:
        logger.info(f"Existing temporary variant reused: {variant.name}")
        self.event_log.info(
            "variant_reused",
            productId=product_gid,
            variantId=variant.legacy_resource_id,
            variantGid=variant.id,
            dimensions=signature,
            price=variant.price,
        )
        return ProvisionedVariant(
            reused=True,
            variant_id=variant.legacy_resource_id,
            variant_gid=variant.id,
            title=variant.display_name or variant.title,
            price=variant.price,
            created_at=variant.metadata.get(CREATED_AT_KEY),
            delete_at=variant.metadata.get(DELETE_AT_KEY),
        )
