"""Contact form relay."""

from fastapi import APIRouter, Depends, Request, status

from silent_money.dependencies import get_contact_service
from silent_money.middleware.rate_limit import CONTACT_LIMIT, limiter
from silent_money.models.auth import ErrorResponse
from silent_money.models.community import ContactAccepted, ContactRequest
from silent_money.services.contact_service import ContactService

router = APIRouter(prefix="/contact", tags=["Contact"])


@router.post(
    "",
    response_model=ContactAccepted,
    status_code=status.HTTP_202_ACCEPTED,
    responses={502: {"model": ErrorResponse, "description": "Relay unavailable"}}
)
@limiter.limit(CONTACT_LIMIT)
async def send_contact_message(
    request: Request,
    payload: ContactRequest,
    service: ContactService = Depends(get_contact_service),
) -> ContactAccepted:
    return await service.send_contact_message(payload)
