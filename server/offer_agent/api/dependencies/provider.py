from fastapi import Request

from offer_agent.core.config import Settings
from offer_agent.integrations.esignature.base import ESignatureProvider


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_esignature_provider(request: Request) -> ESignatureProvider:
    return request.app.state.esignature_provider
