# certtrust/certificates/storage/__init__.py

from .trust_store import TrustStore, TrustedCertificateEntry, CONTAINER_PASSPHRASE

__all__ = [
    'TrustStore',
    'TrustedCertificateEntry',
    'CONTAINER_PASSPHRASE',
]
