# certtrust/services/connection_factory.py
# HTTP/HTTPS connections configured with the cached TLS context and an exact hostname verifier

import logging
import ssl
from typing import Callable, Optional, Tuple
from urllib.parse import urlparse

import requests
from requests.adapters import BaseAdapter, HTTPAdapter
from requests.exceptions import InvalidURL
from urllib3.connection import HTTPSConnection
from urllib3.connectionpool import HTTPSConnectionPool

from ..certificates.validation import HostnameVerifier
from ..exceptions import NotInitialized
from .context_cache import SecureContext
from .initialization_gate import InitializationGate

logger = logging.getLogger(__name__)

Timeout = Tuple[float, Optional[float]]


class HostVerifiedHTTPSConnection(HTTPSConnection):
    """HTTPS connection that checks the peer certificate names the requested host"""

    hostname_verifier = HostnameVerifier()

    def connect(self) -> None:
        super().connect()
        expected_host = self._tunnel_host or self.host
        peer_der = self.sock.getpeercert(binary_form=True)
        if not peer_der or not self.hostname_verifier.verify(expected_host, peer_der):
            self.close()
            raise ssl.SSLCertVerificationError(
                f"Certificate presented by {expected_host} does not match the host name"
            )


class HostVerifiedHTTPSConnectionPool(HTTPSConnectionPool):
    ConnectionCls = HostVerifiedHTTPSConnection


class TrustStoreAdapter(HTTPAdapter):
    """Transport adapter that pins the pool to the trust subsystem's SSLContext"""

    def __init__(self, ssl_context: ssl.SSLContext, **kwargs):
        self._ssl_context = ssl_context
        super().__init__(**kwargs)

    def init_poolmanager(self, connections, maxsize, block=False, **pool_kwargs):
        pool_kwargs["ssl_context"] = self._ssl_context
        # urllib3's own hostname matching is replaced by HostVerifiedHTTPSConnection
        pool_kwargs["assert_hostname"] = False
        super().init_poolmanager(connections, maxsize, block=block, **pool_kwargs)
        self.poolmanager.pool_classes_by_scheme = {
            **self.poolmanager.pool_classes_by_scheme,
            "https": HostVerifiedHTTPSConnectionPool,
        }

    def build_connection_pool_key_attributes(self, request, verify, cert=None):
        # The shared SSLContext is the only source of trust: a per-request
        # verify path or a CA bundle from the environment must not be loaded into it.
        if verify is not True:
            logger.debug(f"Ignoring verify={verify!r} for {request.url}, using the trust store context")
        host_params, pool_kwargs = super().build_connection_pool_key_attributes(request, True, cert)
        for key in ("ca_certs", "ca_cert_dir", "ca_cert_data"):
            pool_kwargs.pop(key, None)
        pool_kwargs["cert_reqs"] = "CERT_REQUIRED"
        return host_params, pool_kwargs

    def cert_verify(self, conn, url, verify, cert):
        super().cert_verify(conn, url, True, cert)


class NotInitializedAdapter(BaseAdapter):
    """Refuses HTTPS (e.g. a redirect target) while the trust store is not ready"""

    def send(self, request, **kwargs):
        raise NotInitialized(f"Certificate store not yet initialized, refusing {request.url}")

    def close(self):
        pass


class TrustedConnection:
    """
    Connection handle for a single URL.

    Nothing touches the network until a request is sent; the TLS handshake
    then happens inside the transport.
    """

    def __init__(self, url: str, session: requests.Session, timeout: Timeout):
        self.url = url
        self.session = session
        self.timeout = timeout

    @property
    def host(self) -> str:
        return urlparse(self.url).hostname or ""

    def request(self, method: str = "GET", **kwargs) -> requests.Response:
        kwargs.setdefault("timeout", self.timeout)
        logger.debug(f"{method} {self.url}")
        return self.session.request(method, self.url, **kwargs)

    def get(self, **kwargs) -> requests.Response:
        return self.request("GET", **kwargs)

    def head(self, **kwargs) -> requests.Response:
        return self.request("HEAD", **kwargs)

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> "TrustedConnection":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class ConnectionFactory:
    """Opens connections that trust exactly what the trust subsystem trusts"""

    def __init__(
        self,
        gate: InitializationGate,
        context_provider: Callable[[], SecureContext],
        connect_timeout: float,
        read_timeout: Optional[float] = None
    ):
        self._gate = gate
        self._context_provider = context_provider
        self.connect_timeout = connect_timeout
        self.read_timeout = read_timeout

    def open_connection(self, url: str) -> TrustedConnection:
        """
        Create a connection handle for a URL.

        Args:
            url: http or https URL

        Returns:
            TrustedConnection using the current secure context

        Raises:
            NotInitialized: For https URLs before initialization completed (no waiting)
            InvalidURL: For unsupported or malformed URLs
            SecurityError: If the TLS context cannot be built
        """
        parsed = urlparse(url)
        scheme = parsed.scheme.lower()
        if scheme not in ("http", "https") or not parsed.hostname:
            raise InvalidURL(f"Unsupported URL: {url!r}")

        ready = self._gate.is_ready
        if scheme == "https" and not ready:
            raise NotInitialized("Certificate store not yet initialized")

        session = requests.Session()
        # REQUESTS_CA_BUNDLE, CURL_CA_BUNDLE and proxy settings stay out of trust decisions
        session.trust_env = False
        if ready:
            context = self._context_provider()
            session.mount("https://", TrustStoreAdapter(context.ssl_context))
        else:
            session.mount("https://", NotInitializedAdapter())

        logger.debug(f"Opened connection handle for {parsed.hostname} ({scheme})")
        return TrustedConnection(url, session, (self.connect_timeout, self.read_timeout))
