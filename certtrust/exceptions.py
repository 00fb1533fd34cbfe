# certtrust/exceptions.py
# Error taxonomy for trust decisions, storage and connection setup


class CertTrustError(Exception):
    """Base exception for trust subsystem operations"""
    pass


class NotInitialized(CertTrustError):
    """Raised when a trust query or connection is attempted before bootstrap completed"""
    pass


class StorageError(CertTrustError):
    """Base exception for durable trust store failures"""
    pass


class StorageUnavailable(StorageError):
    """Raised when the trust store file cannot be read or written"""
    pass


class StorageCorrupt(StorageError):
    """Raised when the trust store file cannot be parsed"""
    pass


class ChainNotTrusted(CertTrustError):
    """Raised when neither local nor platform trust accepts a certificate chain"""
    pass


class CertificateParseError(CertTrustError, ValueError):
    """Raised when certificate bytes are malformed"""
    pass


class SecurityError(CertTrustError):
    """Raised for any other cryptographic configuration failure"""
    pass
