"""
E-signature Base Classes and Interfaces

Defines the contract and the request/response types shared by e-signature
adapters in the offer agent.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Tuple


class EnvelopeStatus(str, Enum):
    """Status an envelope is created in."""
    CREATED = "created"
    SENT = "sent"


@dataclass(frozen=True)
class AccessGrant:
    """Short-lived provider credentials for a single account."""
    access_token: str
    account_id: str
    base_uri: str
    expires_at: Optional[datetime] = None

    @property
    def api_base_path(self) -> str:
        return f"{self.base_uri.rstrip('/')}/restapi"

    def is_valid(self, margin_seconds: int = 0, now: Optional[datetime] = None) -> bool:
        if self.expires_at is None:
            return False
        now = now or datetime.now(timezone.utc)
        return (self.expires_at - now).total_seconds() > margin_seconds


@dataclass(frozen=True)
class TextTab:
    """A named text field on a template."""
    label: str
    value: str


@dataclass(frozen=True)
class TemplateRole:
    """Binds a recipient to a role defined on the template."""
    email: str
    name: str
    role_name: str


@dataclass(frozen=True)
class EnvelopeRequest:
    """Template-based envelope definition."""
    template_id: str
    role: TemplateRole
    text_tabs: Tuple[TextTab, ...] = ()
    status: EnvelopeStatus = EnvelopeStatus.SENT

    def to_payload(self) -> Dict[str, Any]:
        """Render the request in DocuSign's envelopeDefinition shape."""
        return {
            "templateId": self.template_id,
            "templateRoles": [
                {
                    "email": self.role.email,
                    "name": self.role.name,
                    "roleName": self.role.role_name,
                    "tabs": {
                        "textTabs": [
                            {"tabLabel": tab.label, "value": tab.value}
                            for tab in self.text_tabs
                        ]
                    },
                }
            ],
            "status": self.status.value,
        }


@dataclass
class EnvelopeResult:
    """Result of envelope operation."""
    envelope_id: str
    status: EnvelopeStatus
    provider: str
    created_at: Optional[datetime] = None
    provider_response: Dict[str, Any] = field(default_factory=dict)


class SignatureError(Exception):
    """E-signature provider specific errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        provider: Optional[str] = None,
        provider_response: Optional[Dict[str, Any]] = None,
        status_code: Optional[int] = None,
    ):
        super().__init__(message)
        self.error_message = message
        self.error_code = error_code
        self.provider = provider
        self.provider_response = provider_response
        self.status_code = status_code


class ProviderAuthError(SignatureError):
    """Token exchange or account lookup failed."""


class DispatchError(SignatureError):
    """Envelope creation failed."""


class ESignatureProvider(ABC):
    """Abstract base class for e-signature providers."""

    @abstractmethod
    async def authenticate(self) -> AccessGrant:
        """
        Obtain an access grant for the configured service account.

        Raises:
            ProviderAuthError: If the token exchange or account lookup fails
        """

    @abstractmethod
    async def create_envelope(self, grant: AccessGrant, envelope: EnvelopeRequest) -> EnvelopeResult:
        """
        Create and send an envelope.

        Args:
            grant: Credentials returned by authenticate()
            envelope: Envelope definition

        Returns:
            EnvelopeResult with the provider-assigned envelope id

        Raises:
            DispatchError: If envelope creation fails
        """

    async def close(self) -> None:
        """Release any held network resources."""
