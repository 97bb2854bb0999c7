from offer_agent.schemas.common import ErrorResponse
from offer_agent.schemas.offer import OfferRequest, OfferResponse

__all__ = [
    "ErrorResponse",
    "OfferRequest",
    "OfferResponse",
]
