from fastapi import APIRouter, Depends

from offer_agent.api.dependencies.provider import get_app_settings, get_esignature_provider
from offer_agent.core.config import Settings
from offer_agent.integrations.esignature.base import ESignatureProvider
from offer_agent.schemas.common import ErrorResponse
from offer_agent.schemas.offer import OfferRequest, OfferResponse
from offer_agent.services.offer_service import send_offer


router = APIRouter(tags=["offers"])


@router.post(
    "/send-offer",
    response_model=OfferResponse,
    responses={
        401: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)
async def send_offer_endpoint(
    payload: OfferRequest,
    settings: Settings = Depends(get_app_settings),
    provider: ESignatureProvider = Depends(get_esignature_provider),
) -> OfferResponse:
    # SignatureError is turned into a 500 by the application-level handler
    result = await send_offer(payload, settings.template_id, provider)
    return OfferResponse(envelope_id=result.envelope_id)
