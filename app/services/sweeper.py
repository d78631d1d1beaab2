"""
Cleanup sweep for expired temporary variants.

One pass lists the temporary variants (capped), checks each against the
expiry policy and deletes the expired ones one at a time. Variants are never
modified; a failed delete is recorded and the pass moves on.
"""
import logging
from datetime import datetime, timedelta
from typing import Callable, List, Optional, Sequence
from app.core.errors import CatalogError
from app.core.event_log import EventLog, isoformat, utcnow
from app.schemas.cleanup import SweepError, SweepSummary
from app.schemas.variant import CREATED_AT_KEY, DELETE_AT_KEY, CatalogVariant
from app.services.metadata_store import VariantStore

logger = logging.getLogger(__name__)

MAX_AGE = timedelta(hours=24)


class ExpiryRule:
    reason = "expired"

    def matches(self, variant: CatalogVariant, now: datetime) -> bool:
        raise NotImplementedError


class DeleteAtPassed(ExpiryRule):
    """The variant's own ``delete_at`` is in the past."""
    reason = "delete_at_passed"

    def matches(self, variant: CatalogVariant, now: datetime) -> bool:
        delete_at = variant.delete_at
        return delete_at is not None and delete_at < now


class OlderThan(ExpiryRule):
    """The variant was created more than ``max_age`` ago, whatever its ``delete_at`` says."""
    reason = "max_age_exceeded"

    def __init__(self, max_age: timedelta = MAX_AGE):
        self.max_age = max_age

    def matches(self, variant: CatalogVariant, now: datetime) -> bool:
        created_at = variant.created_at
        return created_at is not None and created_at < now - self.max_age


class ExpiryPolicy:
    """A variant is expired when any of the rules matches."""

    def __init__(self, rules: Optional[Sequence[ExpiryRule]] = None):
        self.rules = list(rules) if rules is not None else [DeleteAtPassed(), OlderThan()]

    def expired_reason(self, variant: CatalogVariant, now: datetime) -> Optional[str]:
        for rule in self.rules:
            if rule.matches(variant, now):
                return rule.reason
        return None

    def is_expired(self, variant: CatalogVariant, now: datetime) -> bool:
        return self.expired_reason(variant, now) is not None


class CleanupSweeper:
    def __init__(
        self,
        store: VariantStore,
        event_log: EventLog,
        policy: Optional[ExpiryPolicy] = None,
        clock: Callable[[], datetime] = utcnow,
        scan_limit: int = 250,
    ):
        self.store = store
        self.event_log = event_log
        self.policy = policy or ExpiryPolicy()
        self.clock = clock
        self.scan_limit = scan_limit

    async def sweep(self, trigger: str = "cleanup") -> SweepSummary:
        """
        Run one cleanup pass.

        Only a failure of the initial listing aborts the pass (the
        ``CatalogError`` propagates); per-variant delete failures are
        collected in ``errors``.
        """
        now = self.clock()
        timestamp = isoformat(now)
        self.event_log.info("cleanup_started", trigger=trigger, timestamp=timestamp)

        try:
            variants = await self.store.list_temporary_variants(self.scan_limit)
        except CatalogError as e:
            self.event_log.error(
                "cleanup_error",
                trigger=trigger,
                errorType=type(e).__name__,
                message=e.message,
            )
            self.event_log.check_error_alarm()
            raise

        self.event_log.info("cleanup_scan_result", trigger=trigger, found=len(variants))

        deleted = 0
        skipped = 0
        errors: List[SweepError] = []
        for variant in variants:
            reason = self.policy.expired_reason(variant, now)
            if reason is None:
                skipped += 1
                self.event_log.info(
                    "cleanup_variant_skipped",
                    variant=variant.name,
                    createdAt=variant.metadata.get(CREATED_AT_KEY),
                    deleteAt=variant.metadata.get(DELETE_AT_KEY),
                )
                continue

            try:
                await self.store.delete_variants(variant.product_id, [variant.id])
            except CatalogError as e:
                logger.error(f"Failed to delete temporary variant {variant.name}: {e.message}")
                errors.append(SweepError(variant=variant.name, variant_id=variant.id, errors=e.details or e.message))
                self.event_log.error(
                    "cleanup_delete_failed",
                    variant=variant.name,
                    variantGid=variant.id,
                    productId=variant.product_id,
                    errors=e.details or e.message,
                )
                self.event_log.check_error_alarm()
                continue

            deleted += 1
            self.event_log.info(
                "cleanup_variant_deleted",
                variant=variant.name,
                variantGid=variant.id,
                productId=variant.product_id,
                reason=reason,
            )

        self.event_log.info(
            "cleanup_finished",
            trigger=trigger,
            timestamp=timestamp,
            totalFound=len(variants),
            deletedCount=deleted,
            skippedCount=skipped,
            errorCount=len(errors),
        )
        return SweepSummary(
            success=not errors,
            deleted_count=deleted,
            skipped_count=skipped,
            total_found=len(variants),
            errors=errors,
            timestamp=timestamp,
        )
