"""
Shared fixtures: throwaway certificates, isolated store paths and a trust
service wired to a test-only platform bundle.
"""

import ipaddress
import ssl
import threading
from datetime import datetime, timedelta, timezone
from http.server import BaseHTTPRequestHandler, HTTPServer
from pathlib import Path
from typing import List, Optional

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import NameOID

from certtrust.config import settings
from certtrust.services import TrustService


class CertificateFactory:
    """Mints EC certificates with CertificateBuilder"""

    def __init__(self):
        self.now = datetime.now(timezone.utc)

    @staticmethod
    def new_key():
        return ec.generate_private_key(ec.SECP256R1())

    def issue(
        self,
        common_name: str,
        issuer_cert: Optional[x509.Certificate] = None,
        issuer_key=None,
        key=None,
        is_ca: bool = False,
        not_before: Optional[datetime] = None,
        not_after: Optional[datetime] = None,
        dns_names: Optional[List[str]] = None,
        ip_addresses: Optional[List[str]] = None,
        organization: Optional[str] = None,
    ):
        """Return (certificate, private key); self-signed when no issuer is given"""
        key = key or self.new_key()
        attributes = [x509.NameAttribute(NameOID.COMMON_NAME, common_name)]
        if organization:
            attributes.insert(0, x509.NameAttribute(NameOID.ORGANIZATION_NAME, organization))
        subject = x509.Name(attributes)

        if issuer_cert is None:
            issuer_name, signing_key = subject, key
        else:
            issuer_name, signing_key = issuer_cert.subject, issuer_key

        builder = (
            x509.CertificateBuilder()
            .subject_name(subject)
            .issuer_name(issuer_name)
            .public_key(key.public_key())
            .serial_number(x509.random_serial_number())
            .not_valid_before(not_before or self.now - timedelta(days=1))
            .not_valid_after(not_after or self.now + timedelta(days=30))
            .add_extension(x509.BasicConstraints(ca=is_ca, path_length=None), critical=True)
        )

        san: List[x509.GeneralName] = [x509.DNSName(name) for name in dns_names or []]
        san.extend(x509.IPAddress(ipaddress.ip_address(ip)) for ip in ip_addresses or [])
        if san:
            builder = builder.add_extension(x509.SubjectAlternativeName(san), critical=False)

        cert = builder.sign(signing_key, hashes.SHA256())
        return cert, key

    def ca(self, common_name: str = "Test Root CA"):
        return self.issue(common_name, is_ca=True)

    def self_signed(self, common_name: str = "device.local", **kwargs):
        return self.issue(common_name, **kwargs)

    def expired(self, common_name: str = "expired.local"):
        return self.issue(
            common_name,
            not_before=self.now - timedelta(days=60),
            not_after=self.now - timedelta(days=30),
        )


def to_pem(cert: x509.Certificate) -> bytes:
    return cert.public_bytes(serialization.Encoding.PEM)


def to_der(cert: x509.Certificate) -> bytes:
    return cert.public_bytes(serialization.Encoding.DER)


@pytest.fixture
def cert_factory():
    return CertificateFactory()


@pytest.fixture
def public_ca(cert_factory):
    """Stand-in for a publicly trusted root"""
    return cert_factory.ca("Test Public Root CA")


@pytest.fixture
def platform_cafile(tmp_path, public_ca):
    """PEM bundle that plays the platform trust anchors"""
    path = tmp_path / "platform-ca.pem"
    path.write_bytes(to_pem(public_ca[0]))
    return str(path)


@pytest.fixture
def seed_store() -> Path:
    return settings.SEED_STORE


@pytest.fixture
def store_path(tmp_path) -> Path:
    return tmp_path / "data" / "localTrustStore.zip"


@pytest.fixture
def make_service(store_path, seed_store, platform_cafile):
    """Factory so a test can build several services over the same store"""
    def _make(**kwargs):
        kwargs.setdefault("store_path", store_path)
        kwargs.setdefault("seed_source", seed_store)
        kwargs.setdefault("platform_cafile", platform_cafile)
        return TrustService(**kwargs)
    return _make


@pytest.fixture
def service(make_service):
    return make_service()


@pytest.fixture
def ready_service(service):
    service.initialize()
    return service


class _OkHandler(BaseHTTPRequestHandler):
    """Answers every GET or HEAD with 200"""

    def do_GET(self):
        self.send_response(200)
        self.send_header("Content-Length", "2")
        self.end_headers()
        self.wfile.write(b"ok")

    def do_HEAD(self):
        self.send_response(200)
        self.send_header("Content-Length", "0")
        self.end_headers()

    def log_message(self, format, *args):
        pass


class _QuietHTTPServer(HTTPServer):
    def handle_error(self, request, client_address):
        pass


class LoopbackTLSServer:
    """HTTPS server on 127.0.0.1 presenting a given certificate"""

    def __init__(self, cert: x509.Certificate, key, directory: Path):
        self.certfile = directory / f"server-{cert.serial_number}.pem"
        keyfile = directory / f"server-{cert.serial_number}.key"
        self.certfile.write_bytes(to_pem(cert))
        keyfile.write_bytes(key.private_bytes(
            serialization.Encoding.PEM,
            serialization.PrivateFormat.PKCS8,
            serialization.NoEncryption(),
        ))

        context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
        context.load_cert_chain(str(self.certfile), str(keyfile))
        self.httpd = _QuietHTTPServer(("127.0.0.1", 0), _OkHandler)
        self.httpd.socket = context.wrap_socket(self.httpd.socket, server_side=True)
        self._thread = threading.Thread(target=self.httpd.serve_forever, daemon=True)
        self._thread.start()

    @property
    def url(self) -> str:
        return f"https://127.0.0.1:{self.httpd.server_address[1]}/"

    def stop(self) -> None:
        self.httpd.shutdown()
        self.httpd.server_close()
        self._thread.join(5)


@pytest.fixture
def tls_server(tmp_path):
    """Start loopback HTTPS servers; all are stopped after the test"""
    servers = []

    def _start(cert, key) -> LoopbackTLSServer:
        server = LoopbackTLSServer(cert, key, tmp_path)
        servers.append(server)
        return server

    yield _start
    for server in servers:
        server.stop()


@pytest.fixture
def loopback_service(make_service):
    """Initialized service with timeouts suited to loopback handshakes"""
    service = make_service(connect_timeout=5.0, read_timeout=5.0)
    service.initialize()
    return service
