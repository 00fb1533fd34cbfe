# certtrust/services/initialization_gate.py
# One-shot bootstrap gate: Uninitialized -> Initializing -> Ready, once per process

import logging
import threading
from enum import Enum
from typing import Callable, Optional

from ..exceptions import NotInitialized

logger = logging.getLogger(__name__)


class InitState(Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"


class InitializationGate:
    """
    Runs an initializer exactly once and blocks trust queries until it has
    completed.

    Concurrent callers of run_once race to become the single initializer;
    the others wait for the outcome. A failed initializer returns the gate
    to UNINITIALIZED so a later call can retry.
    """

    def __init__(self):
        self._state = InitState.UNINITIALIZED
        self._condition = threading.Condition()

    @property
    def state(self) -> InitState:
        with self._condition:
            return self._state

    @property
    def is_ready(self) -> bool:
        return self.state is InitState.READY

    def run_once(self, initializer: Callable[[], None]) -> bool:
        """
        Run the initializer unless another caller already did.

        Args:
            initializer: Bootstrap work; raising aborts initialization

        Returns:
            True if this caller ran the initializer, False if it was already done

        Raises:
            NotInitialized: If the concurrent initializer this caller waited on failed
        """
        with self._condition:
            if self._state is InitState.INITIALIZING:
                logger.debug("Initialization in progress elsewhere, waiting")
                self._condition.wait_for(lambda: self._state is not InitState.INITIALIZING)
                if self._state is not InitState.READY:
                    raise NotInitialized("Concurrent initialization failed")
            if self._state is InitState.READY:
                return False
            self._state = InitState.INITIALIZING

        try:
            initializer()
        except BaseException:
            with self._condition:
                self._state = InitState.UNINITIALIZED
                self._condition.notify_all()
            raise

        with self._condition:
            self._state = InitState.READY
            self._condition.notify_all()
        logger.info("Initialization complete")
        return True

    def wait_ready(self, timeout: Optional[float] = None) -> None:
        """
        Block until the gate is READY.

        Raises:
            NotInitialized: If the timeout elapses first
        """
        with self._condition:
            if not self._condition.wait_for(lambda: self._state is InitState.READY, timeout):
                raise NotInitialized(f"Not initialized after waiting {timeout}s")
