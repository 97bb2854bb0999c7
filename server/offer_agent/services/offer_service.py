from __future__ import annotations

from offer_agent.core.logging import get_logger
from offer_agent.integrations.esignature.base import (
    ESignatureProvider,
    EnvelopeRequest,
    EnvelopeResult,
    EnvelopeStatus,
    TemplateRole,
    TextTab,
)
from offer_agent.schemas.offer import OfferRequest

logger = get_logger(__name__)

CANDIDATE_ROLE = "Candidate"


def compose_offer_envelope(profile: OfferRequest, template_id: str) -> EnvelopeRequest:
    return EnvelopeRequest(
        template_id=template_id,
        role=TemplateRole(email=profile.email, name=profile.name, role_name=CANDIDATE_ROLE),
        text_tabs=(
            TextTab("CandidateName", profile.name),
            TextTab("CandidateRole", profile.role),
            TextTab("StartDate", profile.start_date),
            TextTab("EndDate", profile.end_date),
            TextTab("PositionOfGuide", profile.guide_position),
        ),
        status=EnvelopeStatus.SENT,
    )


async def send_offer(profile: OfferRequest, template_id: str, provider: ESignatureProvider) -> EnvelopeResult:
    """
    Authenticate, compose and dispatch one offer envelope.

    ProviderAuthError and DispatchError propagate to the caller unchanged;
    nothing is retried.
    """
    grant = await provider.authenticate()
    logger.info("offer.exchange.completed", account_id=grant.account_id)

    envelope = compose_offer_envelope(profile, template_id)

    result = await provider.create_envelope(grant, envelope)
    logger.info("offer.dispatch.completed", envelope_id=result.envelope_id, status=result.status.value)
    return result
