"""
Shared test configuration and fixtures for the offer agent test suite.
"""

from datetime import datetime, timedelta, timezone
from typing import Generator
from unittest.mock import AsyncMock, Mock

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from fastapi.testclient import TestClient

from offer_agent.core.config import Settings, clear_settings_cache
from offer_agent.integrations.esignature.base import (
    AccessGrant,
    ESignatureProvider,
    EnvelopeResult,
    EnvelopeStatus,
)
from offer_agent.main import create_application


AGENT_TOKEN = "test-agent-token"
AUTH_HEADERS = {"x-agent-auth": AGENT_TOKEN}

ENV_NAMES = (
    "PORT",
    "MY_AGENT_TOKEN",
    "dsJWTClientId",
    "dsOauthServer",
    "impersonatedUserGuid",
    "PRIVATE_KEY",
    "TEMPLATE_ID",
    "HOST",
    "LOG_LEVEL",
    "APP_NAME",
    "PUBLIC_HEALTH_CHECK",
    "MAX_CONCURRENT_REQUESTS",
    "PROVIDER_TIMEOUT_SECONDS",
    "TOKEN_LIFETIME_SECONDS",
    "TOKEN_CACHE_ENABLED",
)


@pytest.fixture(scope="session")
def rsa_private_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def private_key_pem(rsa_private_key) -> str:
    return rsa_private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("utf-8")


@pytest.fixture(scope="session")
def public_key_pem(rsa_private_key) -> str:
    return rsa_private_key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode("utf-8")


@pytest.fixture
def clean_env(monkeypatch):
    """Remove every recognised option from the process environment."""
    for name in ENV_NAMES:
        monkeypatch.delenv(name, raising=False)
    clear_settings_cache()
    yield monkeypatch
    clear_settings_cache()


@pytest.fixture
def settings_kwargs(clean_env, private_key_pem):
    return {
        "_env_file": None,
        "agent_token": AGENT_TOKEN,
        "client_id": "client-123",
        "oauth_host": "https://account-d.docusign.com",
        "impersonated_user_guid": "user-guid-456",
        "private_key": private_key_pem,
        "template_id": "TPL-1",
    }


@pytest.fixture
def test_settings(settings_kwargs) -> Settings:
    return Settings(**settings_kwargs)


@pytest.fixture
def access_grant() -> AccessGrant:
    return AccessGrant(
        access_token="access-token-xyz",
        account_id="A1",
        base_uri="https://ex.com",
        expires_at=datetime.now(timezone.utc) + timedelta(hours=1),
    )


@pytest.fixture
def mock_provider(access_grant):
    """A provider whose calls can be inspected; succeeds unless reconfigured."""
    provider = Mock(spec=ESignatureProvider)
    provider.authenticate = AsyncMock(return_value=access_grant)
    provider.create_envelope = AsyncMock(
        return_value=EnvelopeResult(
            envelope_id="ENV-123",
            status=EnvelopeStatus.SENT,
            provider="docusign",
        )
    )
    provider.close = AsyncMock()
    return provider


@pytest.fixture
def test_client(test_settings, mock_provider) -> Generator[TestClient, None, None]:
    application = create_application(test_settings, provider=mock_provider)
    with TestClient(application) as client:
        yield client


@pytest.fixture
def offer_payload():
    return {
        "signerName": "Ada Lovelace",
        "signerEmail": "ada@example.com",
        "CandidateRole": "Research Intern",
        "StartDate": "2026-01-05",
        "EndDate": "June 30th, 2026",
        "PositionOfGuide": "Principal Engineer",
    }


@pytest.fixture
def auth_headers():
    return dict(AUTH_HEADERS)
