from offer_agent.services import offer_service

__all__ = [
    "offer_service",
]
