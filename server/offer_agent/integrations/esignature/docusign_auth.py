"""
DocuSign JWT Grant

Service-account authentication against the DocuSign OAuth host: a signed
JWT assertion is exchanged for an access token, then the user-info endpoint
supplies the account id and base URI the REST API must be called on.
"""

import asyncio
import json
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional, Tuple, Type

import aiohttp
from jose import jwt
from jose.exceptions import JOSEError

from offer_agent.core.logging import get_logger

from .base import AccessGrant, ProviderAuthError, SignatureError

logger = get_logger(__name__)

JWT_BEARER_GRANT = "urn:ietf:params:oauth:grant-type:jwt-bearer"
DEFAULT_SCOPES = ("signature",)


async def read_error_details(
    response: aiohttp.ClientResponse, fallback: str
) -> Tuple[str, Optional[str], Optional[Dict[str, Any]]]:
    """Pull message, error code and body out of a failed DocuSign response."""
    try:
        data = await response.json(content_type=None)
    except (aiohttp.ContentTypeError, json.JSONDecodeError, ValueError):
        text = await response.text()
        return text or fallback, None, None

    if not isinstance(data, dict):
        return fallback, None, None

    # REST API errors use errorCode/message, OAuth errors use error/error_description
    message = data.get("message") or data.get("error_description") or data.get("error") or fallback
    error_code = data.get("errorCode") or data.get("error")
    return message, error_code, data


async def read_json_object(
    response: aiohttp.ClientResponse, error_cls: Type[SignatureError], operation: str
) -> Dict[str, Any]:
    """Decode a successful DocuSign response, which must be a JSON object."""
    try:
        data = await response.json(content_type=None)
    except (aiohttp.ContentTypeError, json.JSONDecodeError, ValueError):
        data = None

    if not isinstance(data, dict):
        logger.warning("docusign.malformed_response", operation=operation, status=response.status)
        raise error_cls(
            message=f"Malformed DocuSign response in {operation}",
            error_code="invalid_response",
            provider="docusign",
            status_code=response.status,
        )
    return data


class AccessGrantCache:
    """In-process cache of access grants keyed by service-account identity."""

    def __init__(self, margin_seconds: int = 300):
        self.margin_seconds = margin_seconds
        self._grants: Dict[Tuple[str, str], AccessGrant] = {}

    def get(self, client_id: str, user_id: str) -> Optional[AccessGrant]:
        grant = self._grants.get((client_id, user_id))
        if grant is None:
            return None
        if not grant.is_valid(self.margin_seconds):
            del self._grants[(client_id, user_id)]
            return None
        return grant

    def put(self, client_id: str, user_id: str, grant: AccessGrant) -> None:
        self._grants[(client_id, user_id)] = grant

    def clear(self) -> None:
        self._grants.clear()


class DocuSignAuthenticator:
    """Performs the JWT-bearer token exchange for one service account."""

    def __init__(
        self,
        client_id: str,
        oauth_host: str,
        user_id: str,
        private_key: str,
        scopes: Tuple[str, ...] = DEFAULT_SCOPES,
        lifetime_seconds: int = 3600,
    ):
        self.client_id = client_id
        self.oauth_host = oauth_host
        self.user_id = user_id
        self._private_key = private_key
        self.scopes = scopes
        self.lifetime_seconds = lifetime_seconds

        self.token_endpoint = f"https://{oauth_host}/oauth/token"
        self.userinfo_endpoint = f"https://{oauth_host}/oauth/userinfo"

    def build_assertion(self, now: Optional[datetime] = None) -> str:
        """Sign the RS256 assertion presented to the token endpoint."""
        now = now or datetime.now(timezone.utc)
        issued_at = int(now.timestamp())
        claims = {
            "iss": self.client_id,
            "sub": self.user_id,
            "aud": self.oauth_host,
            "iat": issued_at,
            "exp": issued_at + self.lifetime_seconds,
            "scope": " ".join(self.scopes),
        }
        try:
            return jwt.encode(claims, self._private_key, algorithm="RS256")
        except JOSEError as e:
            raise ProviderAuthError(
                message=f"Failed to sign JWT assertion: {e}",
                error_code="invalid_private_key",
                provider="docusign",
            ) from e

    async def request_grant(self, session: aiohttp.ClientSession) -> AccessGrant:
        """
        Exchange a fresh assertion for an access token and resolve the account.

        Raises:
            ProviderAuthError: On any transport, HTTP or payload failure
        """
        assertion = self.build_assertion()
        try:
            access_token, expires_in = await self._request_token(session, assertion)
            account_id, base_uri = await self._request_account(session, access_token)
        except asyncio.TimeoutError as e:
            logger.error("docusign.auth.timeout")
            raise ProviderAuthError(
                message="Provider authentication timed out",
                error_code="timeout",
                provider="docusign",
            ) from e
        except aiohttp.ClientError as e:
            logger.error("docusign.auth.transport_error", error=str(e))
            raise ProviderAuthError(
                message=f"Provider authentication failed: {e}",
                error_code="api_error",
                provider="docusign",
            ) from e

        logger.info("docusign.auth.granted", account_id=account_id, expires_in=expires_in)
        return AccessGrant(
            access_token=access_token,
            account_id=account_id,
            base_uri=base_uri,
            expires_at=datetime.now(timezone.utc) + timedelta(seconds=expires_in),
        )

    async def _request_token(self, session: aiohttp.ClientSession, assertion: str) -> Tuple[str, int]:
        form = {"grant_type": JWT_BEARER_GRANT, "assertion": assertion}
        async with session.post(self.token_endpoint, data=form) as response:
            if response.status != 200:
                message, error_code, body = await read_error_details(response, "Token exchange failed")
                logger.warning("docusign.auth.token_rejected", status=response.status, error_code=error_code)
                raise ProviderAuthError(message, error_code, "docusign", body, response.status)
            data = await read_json_object(response, ProviderAuthError, "token_exchange")

        access_token = data.get("access_token")
        if not access_token or not isinstance(access_token, str):
            raise ProviderAuthError("Token response did not include an access token", "no_token", "docusign", data)
        try:
            expires_in = int(data.get("expires_in", self.lifetime_seconds))
        except (TypeError, ValueError):
            raise ProviderAuthError(
                "Token response has an invalid expires_in", "invalid_response", "docusign", data
            ) from None
        return access_token, expires_in

    async def _request_account(self, session: aiohttp.ClientSession, access_token: str) -> Tuple[str, str]:
        headers = {"Authorization": f"Bearer {access_token}", "Accept": "application/json"}
        async with session.get(self.userinfo_endpoint, headers=headers) as response:
            if response.status != 200:
                message, error_code, body = await read_error_details(response, "User info lookup failed")
                raise ProviderAuthError(message, error_code, "docusign", body, response.status)
            data = await read_json_object(response, ProviderAuthError, "userinfo")

        accounts = data.get("accounts") or []
        if not isinstance(accounts, list) or not accounts:
            raise ProviderAuthError("No accounts available for impersonated user", "no_account", "docusign", data)

        account = accounts[0]
        if not isinstance(account, dict):
            raise ProviderAuthError("Account entry is not an object", "bad_account", "docusign", data)
        account_id, base_uri = account.get("account_id"), account.get("base_uri")
        if not isinstance(account_id, str) or not isinstance(base_uri, str) or not account_id or not base_uri:
            raise ProviderAuthError("Account entry is missing account_id or base_uri", "bad_account", "docusign", data)
        return account_id, base_uri
