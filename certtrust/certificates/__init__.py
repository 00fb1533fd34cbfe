# certtrust/certificates/__init__.py
"""
Certificate handling: parsing, alias hashing, durable storage and trust validation
"""

from .parsing import load_certificate, load_certificate_chain, load_pem_bundle

__all__ = [
    'load_certificate',
    'load_certificate_chain',
    'load_pem_bundle',
]
