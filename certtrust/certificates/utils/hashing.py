# certtrust/certificates/utils/hashing.py
# Alias and fingerprint generation for trust store entries

import hashlib
import logging

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization

logger = logging.getLogger(__name__)

ALIAS_LENGTH = 8


def alias_for_subject_der(subject_der: bytes) -> str:
    """
    Derive the trust store alias from a DER-encoded subject name.

    The MD5 digest only namespaces store entries compactly; it is not a
    security boundary. Its first four bytes are read as an unsigned
    little-endian integer and rendered as zero-padded lowercase hex.

    Args:
        subject_der: DER encoding of the subject distinguished name

    Returns:
        8 character lowercase hexadecimal alias
    """
    digest = hashlib.md5(subject_der).digest()
    value = int.from_bytes(digest[:4], byteorder="little", signed=False)
    return f"{value:0{ALIAS_LENGTH}x}"


def alias_for_certificate(cert: x509.Certificate) -> str:
    """Derive the alias of a certificate from its subject name"""
    alias = alias_for_subject_der(cert.subject.public_bytes())
    logger.debug(f"Alias for subject '{cert.subject.rfc4514_string()}': {alias}")
    return alias


def certificate_fingerprint(cert: x509.Certificate) -> str:
    """Get SHA256 fingerprint of certificate"""
    return cert.fingerprint(hashes.SHA256()).hex().upper()


def certificate_der(cert: x509.Certificate) -> bytes:
    return cert.public_bytes(serialization.Encoding.DER)
