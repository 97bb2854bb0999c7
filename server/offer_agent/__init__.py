"""DocuSign offer agent: relays job-offer signer details to a DocuSign template."""

__version__ = "1.0.0"
