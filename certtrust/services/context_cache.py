# certtrust/services/context_cache.py
# Memoized TLS client configuration derived from the current trust store

import logging
import ssl
import threading
from dataclasses import dataclass
from typing import Callable, Optional

from ..certificates.validation import TrustManager

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SecureContext:
    """Trust manager plus the TLS client context built from it"""
    generation: int
    trust_manager: TrustManager
    ssl_context: ssl.SSLContext


class SecureContextCache:
    """
    Caches one SecureContext per store generation.

    invalidate() bumps the generation; the next get_context() rebuilds.
    Both run under the lock that guards the trust store, so a stale context
    is never handed out after a mutation and concurrent callers share a
    single rebuild.
    """

    def __init__(self, build_trust_manager: Callable[[], TrustManager], lock: threading.RLock):
        self._build_trust_manager = build_trust_manager
        self._lock = lock
        self._generation = 0
        self._cached: Optional[SecureContext] = None

    @property
    def generation(self) -> int:
        with self._lock:
            return self._generation

    @property
    def current(self) -> Optional[SecureContext]:
        """The built context if it matches the current generation, without rebuilding"""
        with self._lock:
            if self._cached is not None and self._cached.generation == self._generation:
                return self._cached
            return None

    def invalidate(self) -> int:
        """Mark the cached context stale; call while holding the store lock"""
        with self._lock:
            self._generation += 1
            logger.debug(f"Secure context invalidated, generation now {self._generation}")
            return self._generation

    def get_context(self) -> SecureContext:
        with self._lock:
            cached = self._cached
            if cached is not None and cached.generation == self._generation:
                return cached

            generation = self._generation
            trust_manager = self._build_trust_manager()
            context = SecureContext(
                generation=generation,
                trust_manager=trust_manager,
                ssl_context=trust_manager.create_ssl_context(),
            )
            self._cached = context
            logger.info(f"Secure context rebuilt (generation {generation})")
            return context
