# certtrust/services/trust_service.py
# Trust subsystem: store, decision engine, context cache, bootstrap gate and change notification

import logging
import threading
from pathlib import Path
from typing import Iterable, List, Optional, Union

from ..certificates.parsing import CertificateInput, load_certificate, load_certificate_chain
from ..certificates.storage import TrustedCertificateEntry, TrustStore
from ..certificates.utils.hashing import alias_for_certificate, certificate_der
from ..certificates.validation import TrustManager
from ..config import settings
from ..exceptions import CertificateParseError, NotInitialized
from .change_notifier import CertChangedListener, ChangeNotifier
from .connection_factory import ConnectionFactory, TrustedConnection
from .context_cache import SecureContext, SecureContextCache
from .initialization_gate import InitializationGate, InitState

logger = logging.getLogger(__name__)


class TrustService:
    """
    Owned trust subsystem instance, constructed once at startup and handed to
    its collaborators.

    One re-entrant lock covers every "load store -> decide or mutate ->
    persist" sequence and every context rebuild. Listener notification runs
    after that lock is released.
    """

    def __init__(
        self,
        store_path: Optional[Union[str, Path]] = None,
        seed_source: Optional[Union[str, Path]] = None,
        platform_cafile: Optional[str] = None,
        connect_timeout: Optional[float] = None,
        read_timeout: Optional[float] = None,
        init_wait_timeout: Optional[float] = None
    ):
        self.store = TrustStore(store_path or settings.TRUSTSTORE_PATH)
        self.seed_source = Path(seed_source or settings.SEED_STORE)
        self.platform_cafile = platform_cafile or settings.CA_BUNDLE
        self.init_wait_timeout = init_wait_timeout if init_wait_timeout is not None else settings.INIT_WAIT_TIMEOUT

        self._lock = threading.RLock()
        self.gate = InitializationGate()
        self.notifier = ChangeNotifier()
        self.context_cache = SecureContextCache(self.build_trust_manager, self._lock)
        self.connections = ConnectionFactory(
            self.gate,
            self.context_cache.get_context,
            connect_timeout=connect_timeout if connect_timeout is not None else settings.CONNECT_TIMEOUT,
            read_timeout=read_timeout if read_timeout is not None else settings.READ_TIMEOUT,
        )

    @property
    def state(self) -> InitState:
        return self.gate.state

    # ------------------------------------------------------------------ #
    # bootstrap
    # ------------------------------------------------------------------ #

    def initialize(self) -> bool:
        """
        Seed the trust store on first run and build the TLS context.

        Safe to call from any number of threads; only one performs the work.

        Returns:
            True if this call performed the initialization

        Raises:
            StorageUnavailable, StorageCorrupt, SecurityError: Fatal bootstrap errors
            NotInitialized: If a concurrent initialization this call waited on failed
        """
        return self.gate.run_once(self._bootstrap)

    def _bootstrap(self) -> None:
        logger.info(f"=== TRUST STORE BOOTSTRAP ({self.store.path}) ===")
        with self._lock:
            self.store.seed_from(self.seed_source)
            # fails here rather than on first use if the store is unreadable
            context = self.context_cache.get_context()
        logger.info(
            f"Trust store ready: {len(context.trust_manager.local_certificates)} local entries, "
            f"{len(context.trust_manager.platform_anchors)} platform anchors"
        )

    def _wait_ready(self) -> None:
        self.gate.wait_ready(self.init_wait_timeout)

    # ------------------------------------------------------------------ #
    # trust decisions
    # ------------------------------------------------------------------ #

    def add_certificate(self, raw_certificate: CertificateInput) -> bool:
        """
        Persist an operator-approved certificate.

        Args:
            raw_certificate: DER/PEM bytes or a parsed certificate

        Returns:
            True once durably stored, False if the bytes are not a certificate

        Raises:
            NotInitialized: If called before initialization
            StorageUnavailable, StorageCorrupt: If the store cannot be read or written
        """
        if not self.gate.is_ready:
            raise NotInitialized("Certificate store not yet initialized")

        try:
            cert = load_certificate(raw_certificate)
        except CertificateParseError as e:
            logger.warning(f"Rejected certificate addition: {e}")
            return False

        with self._lock:
            entry = self.store.add_entry(cert)
            self.context_cache.invalidate()

        logger.info(f"Accepted certificate {entry.alias} for '{cert.subject.rfc4514_string()}'")
        self.notifier.notify(entry)
        return True

    def is_trusted(self, raw_certificate: CertificateInput) -> bool:
        """
        Whether this exact leaf certificate has been accepted locally.

        Blocks until initialization completes; fails closed if the wait
        times out. Malformed input is reported as not trusted.
        """
        try:
            self._wait_ready()
        except NotInitialized as e:
            logger.warning(f"Trust query failed closed: {e}")
            return False

        try:
            cert = load_certificate(raw_certificate)
        except CertificateParseError as e:
            logger.debug(f"Trust query on malformed certificate: {e}")
            return False

        with self._lock:
            entries = self.store.load()
        entry = entries.get(alias_for_certificate(cert))
        return entry is not None and entry.certificate == certificate_der(cert)

    def check_server_trusted(self, chain: Iterable[CertificateInput]) -> None:
        """
        Validate a presented chain (leaf first) against local and platform trust.

        Raises:
            ChainNotTrusted: If neither source accepts the chain
            CertificateParseError: If a chain element is malformed
            NotInitialized: If the initialization wait times out
        """
        certificates = load_certificate_chain(chain)
        self._wait_ready()
        self.get_context().trust_manager.check_server_trusted(certificates)

    def build_trust_manager(self) -> TrustManager:
        """Compose the platform anchors with the current store entries"""
        with self._lock:
            entries = self.store.load()
            local_certificates = [entry.to_x509() for entry in entries.values()]
        return TrustManager(local_certificates, self.platform_cafile)

    def get_context(self) -> SecureContext:
        """
        Current secure context, the TLS configuration every connection uses.

        Raises:
            NotInitialized: If the initialization wait times out
        """
        self._wait_ready()
        return self.context_cache.get_context()

    def list_entries(self) -> List[TrustedCertificateEntry]:
        self._wait_ready()
        with self._lock:
            return list(self.store.load().values())

    # ------------------------------------------------------------------ #
    # connections and listeners
    # ------------------------------------------------------------------ #

    def open_connection(self, url: str) -> TrustedConnection:
        return self.connections.open_connection(url)

    def add_change_listener(self, listener: CertChangedListener) -> None:
        self.notifier.add_listener(listener)

    def remove_change_listener(self, listener: CertChangedListener) -> None:
        self.notifier.remove_listener(listener)
