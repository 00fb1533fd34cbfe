# certtrust/certificates/validation/hostname.py
# Exact, case-insensitive hostname verification against a server certificate

import ipaddress
import logging
from typing import List

from cryptography import x509
from cryptography.x509.oid import NameOID

from ..parsing import CertificateInput, load_certificate
from ...exceptions import CertificateParseError

logger = logging.getLogger(__name__)


def _normalize(name: str) -> str:
    name = name.strip().strip("[]").rstrip(".").lower()
    try:
        return ipaddress.ip_address(name).compressed
    except ValueError:
        return name


class HostnameVerifier:
    """
    Accepts a certificate only if its subject common name or one of its
    subject alternative names equals the host exactly. Wildcards are not
    expanded.
    """

    @staticmethod
    def certificate_names(cert: x509.Certificate) -> List[str]:
        names = [str(attr.value) for attr in cert.subject.get_attributes_for_oid(NameOID.COMMON_NAME)]
        try:
            san = cert.extensions.get_extension_for_class(x509.SubjectAlternativeName).value
        except x509.ExtensionNotFound:
            return names
        names.extend(san.get_values_for_type(x509.DNSName))
        names.extend(str(ip) for ip in san.get_values_for_type(x509.IPAddress))
        return names

    def verify(self, hostname: str, certificate: CertificateInput) -> bool:
        if not hostname:
            return False
        try:
            cert = load_certificate(certificate)
        except CertificateParseError as e:
            logger.warning(f"Hostname check for {hostname} failed, unreadable peer certificate: {e}")
            return False

        expected = _normalize(hostname)
        names = self.certificate_names(cert)
        if any(_normalize(name) == expected for name in names):
            return True

        logger.warning(f"Host '{hostname}' does not match certificate names {names}")
        return False
