from pydantic import Field

from offer_agent.schemas.common import WireModel


class OfferRequest(WireModel):
    """Signer profile for a job offer. Values are forwarded verbatim."""

    name: str = Field(alias="signerName", min_length=1)
    email: str = Field(alias="signerEmail", min_length=1)
    role: str = Field(alias="CandidateRole", min_length=1)
    start_date: str = Field(alias="StartDate", min_length=1)
    end_date: str = Field(alias="EndDate", min_length=1)
    guide_position: str = Field(alias="PositionOfGuide", min_length=1)


class OfferResponse(WireModel):
    message: str = "Envelope sent"
    envelope_id: str = Field(alias="envelopeId")
