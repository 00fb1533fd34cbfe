# certtrust/services/change_notifier.py
# Fan-out of "trust store changed" events

import logging
import threading
from typing import Callable, List

from ..certificates.storage import TrustedCertificateEntry

logger = logging.getLogger(__name__)

CertChangedListener = Callable[[TrustedCertificateEntry], None]


class ChangeNotifier:
    """Registry of distinct listeners called after every committed certificate addition"""

    def __init__(self):
        self._listeners: List[CertChangedListener] = []
        self._lock = threading.Lock()

    def add_listener(self, listener: CertChangedListener) -> None:
        with self._lock:
            if listener not in self._listeners:
                self._listeners.append(listener)

    def remove_listener(self, listener: CertChangedListener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def listener_count(self) -> int:
        with self._lock:
            return len(self._listeners)

    def notify(self, entry: TrustedCertificateEntry) -> None:
        """
        Call every listener with the added entry.

        Runs on the caller's thread without holding any lock, so listeners may
        query or mutate the trust subsystem. A failing listener is logged and
        does not stop the others.
        """
        with self._lock:
            listeners = list(self._listeners)

        logger.debug(f"Notifying {len(listeners)} listeners of certificate {entry.alias}")
        for listener in listeners:
            try:
                listener(entry)
            except Exception:
                logger.exception(f"Certificate listener {listener!r} failed for {entry.alias}")
