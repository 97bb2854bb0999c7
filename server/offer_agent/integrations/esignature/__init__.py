"""
E-signature integration modules

Provides the DocuSign adapter and the types shared by e-signature providers.
"""

from .base import (
    AccessGrant,
    DispatchError,
    ESignatureProvider,
    EnvelopeRequest,
    EnvelopeResult,
    EnvelopeStatus,
    ProviderAuthError,
    SignatureError,
    TemplateRole,
    TextTab,
)

__all__ = [
    "AccessGrant",
    "DispatchError",
    "ESignatureProvider",
    "EnvelopeRequest",
    "EnvelopeResult",
    "EnvelopeStatus",
    "ProviderAuthError",
    "SignatureError",
    "TemplateRole",
    "TextTab",
]
