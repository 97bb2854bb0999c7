"""
DocuSign E-signature Adapter

Provides integration with the DocuSign eSignature REST API for the offer
agent: service-account authentication and template-based envelope creation.
"""

import asyncio
from datetime import datetime, timezone
from typing import Optional

import aiohttp
from aiohttp import ClientTimeout

from offer_agent.core.config import Settings
from offer_agent.core.logging import get_logger

from .base import (
    AccessGrant,
    DispatchError,
    ESignatureProvider,
    EnvelopeRequest,
    EnvelopeResult,
    EnvelopeStatus,
)
from .docusign_auth import AccessGrantCache, DocuSignAuthenticator, read_error_details, read_json_object

logger = get_logger(__name__)

API_VERSION = "v2.1"


class DocuSignAdapter(ESignatureProvider):
    """DocuSign e-signature adapter."""

    def __init__(
        self,
        authenticator: DocuSignAuthenticator,
        timeout_seconds: float = 30,
        grant_cache: Optional[AccessGrantCache] = None,
    ):
        """
        Initialize DocuSign adapter.

        Args:
            authenticator: JWT grant helper for the service account
            timeout_seconds: Total timeout applied to every provider call
            grant_cache: Optional cache; when None every call re-authenticates
        """
        self.authenticator = authenticator
        self.grant_cache = grant_cache

        # Session will be created lazily to avoid event loop issues during initialization
        self._session: Optional[aiohttp.ClientSession] = None
        self._timeout = ClientTimeout(total=timeout_seconds, connect=min(10, timeout_seconds))

    @classmethod
    def from_settings(cls, settings: Settings) -> "DocuSignAdapter":
        authenticator = DocuSignAuthenticator(
            client_id=settings.client_id,
            oauth_host=settings.oauth_host,
            user_id=settings.impersonated_user_guid,
            private_key=settings.private_key,
            lifetime_seconds=settings.token_lifetime_seconds,
        )
        return cls(
            authenticator,
            timeout_seconds=settings.provider_timeout_seconds,
            grant_cache=AccessGrantCache() if settings.token_cache_enabled else None,
        )

    @property
    def session(self) -> aiohttp.ClientSession:
        """Get or create the HTTP session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=self._timeout,
                headers={"Accept": "application/json"},
            )
        return self._session

    async def authenticate(self) -> AccessGrant:
        auth = self.authenticator
        if self.grant_cache is not None:
            cached = self.grant_cache.get(auth.client_id, auth.user_id)
            if cached is not None:
                logger.debug("docusign.auth.cache_hit", account_id=cached.account_id)
                return cached

        grant = await auth.request_grant(self.session)

        if self.grant_cache is not None:
            self.grant_cache.put(auth.client_id, auth.user_id, grant)
        return grant

    def envelopes_endpoint(self, grant: AccessGrant) -> str:
        return f"{grant.api_base_path}/{API_VERSION}/accounts/{grant.account_id}/envelopes"

    async def create_envelope(self, grant: AccessGrant, envelope: EnvelopeRequest) -> EnvelopeResult:
        """
        Create an envelope from a template and send it.

        Raises:
            DispatchError: If the provider rejects the envelope or is unreachable
        """
        headers = {
            "Authorization": f"Bearer {grant.access_token}",
            "Content-Type": "application/json",
        }
        try:
            async with self.session.post(
                self.envelopes_endpoint(grant), json=envelope.to_payload(), headers=headers
            ) as response:
                await self._handle_api_error(response, "create_envelope")
                response_data = await read_json_object(response, DispatchError, "create_envelope")
        except asyncio.TimeoutError as e:
            logger.error("docusign.envelope.timeout", template_id=envelope.template_id)
            raise DispatchError(
                message="Envelope creation timed out",
                error_code="timeout",
                provider="docusign",
            ) from e
        except aiohttp.ClientError as e:
            logger.error("docusign.envelope.transport_error", error=str(e))
            raise DispatchError(
                message=f"Failed to create envelope: {e}",
                error_code="api_error",
                provider="docusign",
            ) from e

        envelope_id = response_data.get("envelopeId")
        if not envelope_id or not isinstance(envelope_id, str):
            raise DispatchError(
                message="Provider response did not include an envelope id",
                error_code="no_envelope_id",
                provider="docusign",
                provider_response=response_data,
            )

        logger.info("docusign.envelope.created", envelope_id=envelope_id, template_id=envelope.template_id)
        return EnvelopeResult(
            envelope_id=envelope_id,
            status=self._map_status_from_docusign(response_data.get("status", "created")),
            provider="docusign",
            created_at=datetime.now(timezone.utc),
            provider_response=response_data,
        )

    def _map_status_from_docusign(self, docusign_status) -> EnvelopeStatus:
        try:
            return EnvelopeStatus(str(docusign_status).lower())
        except ValueError:
            return EnvelopeStatus.CREATED

    async def _handle_api_error(self, response: aiohttp.ClientResponse, operation: str):
        """Raise DispatchError carrying the provider's message for non-success responses."""
        if response.status in (200, 201):
            return

        message, error_code, body = await read_error_details(
            response, f"DocuSign API error in {operation}"
        )
        logger.warning(
            "docusign.envelope.rejected",
            operation=operation,
            status=response.status,
            error_code=error_code,
        )
        if response.status == 429:
            retry_after = response.headers.get("Retry-After", "60")
            message = f"{message} (rate limited, retry after {retry_after}s)"
        raise DispatchError(message, error_code or "api_error", "docusign", body, response.status)

    async def close(self):
        """Close the HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()
            self._session = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
