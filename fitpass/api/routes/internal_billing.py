from __future__ import annotations

from dataclasses import asdict
from datetime import datetime, timezone
from uuid import UUID

import structlog
from fastapi import APIRouter, HTTPException, Query, Request

from fitpass.api.errors import billing_http_error
from fitpass.api.routes.billing_models import (
    AttendanceRequest,
    AttendanceResponse,
    GymPricingListResponse,
    GymPricingRequest,
    GymPricingResponse,
    MonthlyGrantRunRequest,
    PayoutReportRequest,
    PayoutSnapshotListResponse,
    PayoutSnapshotResponse,
)
from fitpass.billing.bookings.service import BookingService
from fitpass.billing.errors import BillingError
from fitpass.billing.payouts.rules import report_to_payload
from fitpass.billing.payouts.service import PayoutService
from fitpass.core.config import get_settings
from fitpass.db.session import SessionLocal
from fitpass.services.internal_auth import (
    extract_client_ip,
    is_client_ip_allowed,
    is_internal_request_authenticated,
)
from fitpass.workers.tasks.monthly_grants import (
    get_monthly_grants_status_async,
    run_monthly_grants_async,
)

router = APIRouter(prefix="/internal/billing", tags=["internal", "billing"])
logger = structlog.get_logger(__name__)


def _assert_internal_access(request: Request) -> None:
    settings = get_settings()
    client_ip = extract_client_ip(
        request,
        trusted_proxies=settings.internal_api_trusted_proxies,
    )

    if not is_client_ip_allowed(client_ip=client_ip, allowlist=settings.internal_api_allowlist):
        logger.warning("internal_billing_auth_failed", reason="ip_not_allowed", client_ip=client_ip)
        raise HTTPException(status_code=403, detail={"code": "E_FORBIDDEN"})

    if not is_internal_request_authenticated(
        request,
        expected_token=settings.internal_api_token,
    ):
        logger.warning(
            "internal_billing_auth_failed",
            reason="invalid_credentials",
            client_ip=client_ip,
        )
        raise HTTPException(status_code=403, detail={"code": "E_FORBIDDEN"})


@router.post("/grant-monthly")
async def trigger_monthly_grants(
    request: Request,
    payload: MonthlyGrantRunRequest | None = None,
) -> dict[str, object]:
    _assert_internal_access(request)
    force = payload.force if payload is not None else False
    return await run_monthly_grants_async(now_utc=datetime.now(timezone.utc), force=force)


@router.get("/grant-monthly")
async def monthly_grants_status(request: Request) -> dict[str, object]:
    _assert_internal_access(request)
    return await get_monthly_grants_status_async(now_utc=datetime.now(timezone.utc))


@router.post("/payouts")
async def generate_payout_report(
    request: Request,
    payload: PayoutReportRequest | None = None,
) -> dict[str, object]:
    _assert_internal_access(request)
    payload = payload or PayoutReportRequest()
    now_utc = datetime.now(timezone.utc)
    async with SessionLocal.begin() as session:
        try:
            report = await PayoutService.generate_report(
                session,
                now_utc=now_utc,
                period_start=payload.period_start,
                period_end=payload.period_end,
                created_by=payload.created_by,
            )
        except ValueError as exc:
            raise HTTPException(status_code=422, detail={"code": "E_INVALID_PERIOD"}) from exc
    response = report_to_payload(report)
    response["snapshot_id"] = report.snapshot_id
    return response


@router.get("/payout-snapshots", response_model=PayoutSnapshotListResponse)
async def list_payout_snapshots(
    request: Request,
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
) -> PayoutSnapshotListResponse:
    _assert_internal_access(request)
    async with SessionLocal.begin() as session:
        page = await PayoutService.list_snapshots(session, limit=limit, offset=offset)
    return PayoutSnapshotListResponse(
        items=[PayoutSnapshotResponse(**asdict(entry)) for entry in page.snapshots],
        total=page.total,
        limit=page.limit,
        offset=page.offset,
    )


@router.get("/gym-pricing", response_model=GymPricingListResponse)
async def list_gym_pricing(request: Request) -> GymPricingListResponse:
    _assert_internal_access(request)
    async with SessionLocal.begin() as session:
        entries = await PayoutService.list_gym_pricing(session)
    return GymPricingListResponse(items=[GymPricingResponse(**asdict(entry)) for entry in entries])


@router.post("/gym-pricing", response_model=GymPricingResponse, status_code=201)
async def set_gym_pricing(payload: GymPricingRequest, request: Request) -> GymPricingResponse:
    _assert_internal_access(request)
    now_utc = datetime.now(timezone.utc)
    async with SessionLocal.begin() as session:
        try:
            entry = await PayoutService.set_gym_pricing(
                session,
                gym_id=payload.gym_id,
                payout_percentage=payload.payout_percentage,
                base_price=payload.base_price,
                active=payload.active,
                now_utc=now_utc,
            )
        except BillingError as exc:
            raise billing_http_error(exc) from exc
        except ValueError as exc:
            raise HTTPException(status_code=422, detail={"code": "E_INVALID_PRICING"}) from exc
    return GymPricingResponse(**asdict(entry))


@router.post("/bookings/{booking_id}/attendance", response_model=AttendanceResponse)
async def mark_attendance(
    booking_id: UUID,
    payload: AttendanceRequest,
    request: Request,
) -> AttendanceResponse:
    _assert_internal_access(request)
    now_utc = datetime.now(timezone.utc)
    async with SessionLocal.begin() as session:
        try:
            booking = await BookingService.mark_attendance(
                session,
                booking_id=booking_id,
                attended=payload.attended,
                now_utc=now_utc,
            )
        except BillingError as exc:
            raise billing_http_error(exc) from exc
        return AttendanceResponse(
            booking_id=booking.id,
            status=booking.status,
            attended=booking.attended,
        )
