# certtrust/certificates/validation/trust_manager.py
# Chain validator composed of the platform trust anchors and the local trust store

import functools
import logging
import ssl
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

import certifi
from cryptography import x509
from cryptography.exceptions import InvalidSignature

from ..utils.hashing import certificate_der, certificate_fingerprint
from ...exceptions import ChainNotTrusted, SecurityError

logger = logging.getLogger(__name__)


@functools.lru_cache(maxsize=8)
def load_platform_anchors(cafile: str) -> Tuple[x509.Certificate, ...]:
    """Load the platform trust anchors from a PEM bundle (cached per path)"""
    try:
        data = Path(cafile).read_bytes()
    except OSError as e:
        raise SecurityError(f"Cannot read platform CA bundle {cafile}: {e}") from e

    try:
        anchors = x509.load_pem_x509_certificates(data)
    except ValueError as e:
        raise SecurityError(f"Cannot parse platform CA bundle {cafile}: {e}") from e

    logger.info(f"Loaded {len(anchors)} platform trust anchors from {cafile}")
    return tuple(anchors)


def default_platform_cafile() -> str:
    return certifi.where()


class TrustManager:
    """
    Accepts a certificate chain when either the platform anchors or the local
    trust store anchor it. Local entries only ever add trust; they cannot
    revoke a publicly trusted certificate.

    Instances are immutable snapshots of the store they were built from.
    """

    def __init__(self, local_certificates: Sequence[x509.Certificate], platform_cafile: Optional[str] = None):
        self.platform_cafile = platform_cafile or default_platform_cafile()
        self.local_certificates: Tuple[x509.Certificate, ...] = tuple(local_certificates)
        self.platform_anchors = load_platform_anchors(self.platform_cafile)

        self._local_fingerprints = {certificate_fingerprint(c) for c in self.local_certificates}
        self._anchor_fingerprints = set(self._local_fingerprints)
        self._anchors_by_subject: Dict[x509.Name, List[x509.Certificate]] = {}
        for anchor in self.local_certificates + self.platform_anchors:
            self._anchor_fingerprints.add(certificate_fingerprint(anchor))
            self._anchors_by_subject.setdefault(anchor.subject, []).append(anchor)

        logger.debug(
            f"TrustManager built: {len(self.local_certificates)} local entries, "
            f"{len(self.platform_anchors)} platform anchors"
        )

    def is_locally_trusted(self, cert: x509.Certificate) -> bool:
        """Identity check of a leaf against the local entries, no chain building"""
        return certificate_fingerprint(cert) in self._local_fingerprints

    def check_server_trusted(self, chain: Sequence[x509.Certificate], now: Optional[datetime] = None) -> None:
        """
        Validate a presented chain, leaf first.

        Args:
            chain: Certificates as sent by the server
            now: Validation time (defaults to the current UTC time)

        Raises:
            ChainNotTrusted: If neither trust source accepts the chain
        """
        if not chain:
            raise ChainNotTrusted("Empty certificate chain")

        now = now or datetime.now(timezone.utc)
        leaf = chain[0]
        subject = leaf.subject.rfc4514_string()

        if self._chain_anchored(chain, now):
            logger.debug(f"Chain for '{subject}' accepted")
            return

        logger.warning(f"Chain for '{subject}' rejected by local and platform trust")
        raise ChainNotTrusted(f"Certificate chain for '{subject}' is not trusted")

    def create_ssl_context(self) -> ssl.SSLContext:
        """
        Build the TLS client configuration for live handshakes.

        Hostname checking is left to the connection factory's verifier.
        """
        try:
            ctx = ssl.create_default_context(ssl.Purpose.SERVER_AUTH, cafile=self.platform_cafile)
            for cert in self.local_certificates:
                ctx.load_verify_locations(cadata=certificate_der(cert))

            # an accepted leaf that is not self-signed acts as its own anchor
            ctx.verify_flags |= ssl.VERIFY_X509_PARTIAL_CHAIN
            ctx.verify_flags &= ~ssl.VERIFY_X509_STRICT
            ctx.check_hostname = False
            ctx.verify_mode = ssl.CERT_REQUIRED
            ctx.minimum_version = ssl.TLSVersion.TLSv1_2
        except (ssl.SSLError, OSError, ValueError) as e:
            logger.error(f"Cannot build TLS client context: {e}")
            raise SecurityError(f"Cannot build TLS client context: {e}") from e

        return ctx

    def _chain_anchored(self, chain: Sequence[x509.Certificate], now: datetime) -> bool:
        for position, cert in enumerate(chain):
            if not _within_validity(cert, now):
                logger.debug(f"  ✗ Outside validity window: {cert.subject.rfc4514_string()}")
                return False

            if certificate_fingerprint(cert) in self._anchor_fingerprints:
                logger.debug(f"  ✓ Trust anchor reached: {cert.subject.rfc4514_string()}")
                return True

            for anchor in self._anchors_by_subject.get(cert.issuer, ()):
                if _within_validity(anchor, now) and _directly_issued_by(cert, anchor):
                    logger.debug(f"  ✓ Issued by trust anchor: {anchor.subject.rfc4514_string()}")
                    return True

            if position + 1 >= len(chain):
                return False

            if not _directly_issued_by(cert, chain[position + 1]):
                logger.debug(f"  ✗ Broken link after: {cert.subject.rfc4514_string()}")
                return False

        return False


def _within_validity(cert: x509.Certificate, now: datetime) -> bool:
    return cert.not_valid_before_utc <= now <= cert.not_valid_after_utc


def _directly_issued_by(cert: x509.Certificate, issuer: x509.Certificate) -> bool:
    """Check name chaining and the issuer's signature over the certificate"""
    try:
        cert.verify_directly_issued_by(issuer)
        return True
    except (ValueError, TypeError, InvalidSignature) as e:
        logger.debug(f"Signature check {cert.subject.rfc4514_string()} <- {issuer.subject.rfc4514_string()} failed: {e!r}")
        return False
