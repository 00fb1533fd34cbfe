# certtrust/services/__init__.py
"""
Services module initialization
Contains the trust subsystem and its building blocks
"""

from .initialization_gate import InitializationGate, InitState
from .change_notifier import ChangeNotifier
from .context_cache import SecureContext, SecureContextCache
from .connection_factory import ConnectionFactory, TrustedConnection
from .trust_service import TrustService

__all__ = [
    'InitializationGate',
    'InitState',
    'ChangeNotifier',
    'SecureContext',
    'SecureContextCache',
    'ConnectionFactory',
    'TrustedConnection',
    'TrustService',
]
