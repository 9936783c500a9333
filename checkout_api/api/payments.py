"""Payment provider callback endpoint.

GET /payment/callback receives the provider's signed query string. The
endpoint is public and answers only with a generic acknowledgement;
verification failures and conflicts are logged server-side.
"""

from typing import Annotated

import structlog
from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse

from checkout_api.api.dependencies import get_reconciler
from checkout_api.api.schemas import PaymentCallbackResponse
from checkout_api.application.payment_service import PaymentReconciler
from checkout_api.domain.exceptions import DomainError

logger = structlog.get_logger()

router = APIRouter(prefix="/payment", tags=["Payment"])


@router.get(
    "/callback",
    response_model=PaymentCallbackResponse,
    responses={400: {"model": PaymentCallbackResponse}},
    summary="Payment provider callback",
)
async def payment_callback(
    request: Request,
    reconciler: Annotated[PaymentReconciler, Depends(get_reconciler)],
) -> PaymentCallbackResponse | JSONResponse:
    """Verify and apply a payment provider callback.

    Re-deliveries of an already-applied verdict are acknowledged with
    ``ok``.
    """
    params = dict(request.query_params)
    try:
        result = await reconciler.handle_callback(params)
    except DomainError as e:
        logger.warning(
            "Payment callback not applied",
            error_code=e.error_code,
            order_reference=params.get("vnp_TxnRef"),
        )
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"status": "rejected"},
        )

    logger.info("Payment callback acknowledged", order_id=str(result.order.id), duplicate=result.duplicate)
    return PaymentCallbackResponse(status="ok")
