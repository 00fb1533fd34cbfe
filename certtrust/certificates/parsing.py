# certtrust/certificates/parsing.py
# Certificate loading from DER, PEM or already parsed objects

import logging
from typing import List, Union

from cryptography import x509

from ..exceptions import CertificateParseError

logger = logging.getLogger(__name__)

CertificateInput = Union[bytes, bytearray, str, x509.Certificate]

PEM_MARKER = b"-----BEGIN CERTIFICATE-----"


def load_certificate(raw: CertificateInput) -> x509.Certificate:
    """
    Load a single X.509 certificate from DER bytes, PEM bytes/text or a parsed object.

    Args:
        raw: Certificate content

    Returns:
        Parsed certificate

    Raises:
        CertificateParseError: If the content is not a certificate
    """
    if isinstance(raw, x509.Certificate):
        return raw

    if isinstance(raw, str):
        raw = raw.encode("ascii", errors="replace")

    if not isinstance(raw, (bytes, bytearray)):
        raise CertificateParseError(f"Unsupported certificate input type: {type(raw).__name__}")

    data = bytes(raw)
    if not data:
        raise CertificateParseError("Empty certificate content")

    try:
        if PEM_MARKER in data:
            logger.debug("Loading PEM certificate")
            return x509.load_pem_x509_certificate(data)
        logger.debug(f"Loading DER certificate ({len(data)} bytes, header {data[:4].hex()})")
        return x509.load_der_x509_certificate(data)
    except ValueError as e:
        logger.debug(f"Certificate parsing failed: {e}")
        raise CertificateParseError(f"Malformed certificate: {e}") from e


def load_certificate_chain(raw_chain) -> List[x509.Certificate]:
    """Load every certificate of a chain, leaf first"""
    return [load_certificate(item) for item in raw_chain]


def load_pem_bundle(data: bytes) -> List[x509.Certificate]:
    """Load all certificates from a PEM bundle"""
    try:
        return x509.load_pem_x509_certificates(data)
    except ValueError as e:
        raise CertificateParseError(f"Malformed PEM bundle: {e}") from e
