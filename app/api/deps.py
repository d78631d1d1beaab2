import hashlib
import hmac
from datetime import timedelta
from functools import lru_cache
from typing import Iterable, Tuple
from fastapi import Depends, HTTPException, Request, status
from app.core.cache import InMemoryReservationLock, RedisReservationLock, ReservationLock, redis_client
from app.core.config import settings
from app.core.event_log import EventLog, InMemoryEventSink, RedisEventSink
from app.core.shopify_client import ShopifyClient
from app.services.metadata_store import ShopifyVariantStore, VariantStore
from app.services.provisioner import VariantProvisioner
from app.services.sweeper import CleanupSweeper, ExpiryPolicy, DeleteAtPassed, OlderThan

def app_proxy_signature(params: Iterable[Tuple[str, str]], secret: str) -> str:
    """
    Signature the storefront app proxy attaches to forwarded requests:
    sorted ``key=value`` pairs (repeated keys joined by commas), concatenated
    without separators and signed with HMAC-SHA256.
    """
    grouped = {}
    for key, value in params:
        if key == "signature":
            continue
        grouped.setdefault(key, []).append(value)
    message = "".join(f"{key}={','.join(values)}" for key, values in sorted(grouped.items()))
    return hmac.new(secret.encode(), message.encode(), hashlib.sha256).hexdigest()

async def verify_app_proxy(request: Request) -> None:
    """Reject requests that did not come through the storefront app proxy."""
    secret = settings.SHOPIFY_API_SECRET
    if not secret:
        return
    provided = request.query_params.get("signature")
    if not provided:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing app proxy signature"
        )
    expected = app_proxy_signature(request.query_params.multi_items(), secret)
    if not hmac.compare_digest(provided, expected):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid app proxy signature"
        )

@lru_cache()
def get_event_log() -> EventLog:
    if settings.EVENT_LOG_BACKEND == "redis":
        sink = RedisEventSink(redis_client, settings.EVENT_LOG_REDIS_KEY, settings.EVENT_LOG_CAPACITY)
    else:
        sink = InMemoryEventSink(settings.EVENT_LOG_CAPACITY)
    return EventLog(
        sink,
        alarm_threshold=settings.ERROR_ALARM_THRESHOLD,
        alarm_window=timedelta(minutes=settings.ERROR_ALARM_WINDOW_MINUTES),
    )

@lru_cache()
def get_reservation_lock() -> ReservationLock:
    if settings.RESERVATION_BACKEND == "memory":
        return InMemoryReservationLock()
    return RedisReservationLock()

def get_variant_store() -> VariantStore:
    return ShopifyVariantStore(ShopifyClient())

def get_provisioner(
    store: VariantStore = Depends(get_variant_store),
    event_log: EventLog = Depends(get_event_log),
    lock: ReservationLock = Depends(get_reservation_lock),
) -> VariantProvisioner:
    return VariantProvisioner(
        store,
        event_log,
        lock=lock,
        retention=timedelta(hours=settings.TEMP_VARIANT_RETENTION_HOURS),
        scan_limit=settings.PRODUCT_VARIANT_SCAN_LIMIT,
        reservation_ttl=settings.RESERVATION_TTL_SECONDS,
        reservation_wait=settings.RESERVATION_WAIT_SECONDS,
        poll_interval=settings.RESERVATION_POLL_INTERVAL,
    )

def get_expiry_policy() -> ExpiryPolicy:
    return ExpiryPolicy([
        DeleteAtPassed(),
        OlderThan(timedelta(hours=settings.TEMP_VARIANT_MAX_AGE_HOURS)),
    ])

def get_sweeper(
    store: VariantStore = Depends(get_variant_store),
    event_log: EventLog = Depends(get_event_log),
    policy: ExpiryPolicy = Depends(get_expiry_policy),
) -> CleanupSweeper:
    return CleanupSweeper(store, event_log, policy=policy, scan_limit=settings.CLEANUP_SCAN_LIMIT)
