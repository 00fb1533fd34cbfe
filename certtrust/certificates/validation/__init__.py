# certtrust/certificates/validation/__init__.py

from .trust_manager import TrustManager, load_platform_anchors, default_platform_cafile
from .hostname import HostnameVerifier

__all__ = [
    'TrustManager',
    'load_platform_anchors',
    'default_platform_cafile',
    'HostnameVerifier',
]
