# certtrust/__init__.py
"""
Local TLS trust decisions for a client talking to a self-signed or privately
issued server: remember operator-accepted certificates across restarts and
open connections that trust them.
"""

from .exceptions import (
    CertTrustError,
    NotInitialized,
    StorageError,
    StorageUnavailable,
    StorageCorrupt,
    ChainNotTrusted,
    CertificateParseError,
    SecurityError,
)
from .services import TrustService, InitState

__all__ = [
    'TrustService',
    'InitState',
    'CertTrustError',
    'NotInitialized',
    'StorageError',
    'StorageUnavailable',
    'StorageCorrupt',
    'ChainNotTrusted',
    'CertificateParseError',
    'SecurityError',
]
