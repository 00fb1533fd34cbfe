# certtrust/certificates/utils/__init__.py

from .hashing import alias_for_subject_der, alias_for_certificate, certificate_fingerprint

__all__ = [
    'alias_for_subject_der',
    'alias_for_certificate',
    'certificate_fingerprint',
]
