# certtrust/certificates/storage/trust_store.py
# Durable trust store: AES-encrypted ZIP container of operator-accepted certificates

import io
import logging
import os
import shutil
import tempfile
import zlib
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Union

import pyzipper
from cryptography import x509

from ..utils.hashing import alias_for_certificate, certificate_der, certificate_fingerprint
from ...exceptions import StorageCorrupt, StorageUnavailable

logger = logging.getLogger(__name__)

# Not a secret: the store is protected by filesystem permissions (0600),
# the passphrase only satisfies the container format.
CONTAINER_PASSPHRASE = b"certtrust-local-store"

ENTRY_SUFFIX = ".der"

_CONTAINER_ERRORS = (pyzipper.BadZipFile, RuntimeError, EOFError, zlib.error, ValueError, KeyError)


@dataclass(frozen=True)
class TrustedCertificateEntry:
    """Accepted certificate addressed by its subject alias"""
    alias: str
    certificate: bytes  # DER

    @classmethod
    def from_certificate(cls, cert: x509.Certificate) -> "TrustedCertificateEntry":
        return cls(alias=alias_for_certificate(cert), certificate=certificate_der(cert))

    @property
    def member_name(self) -> str:
        return f"{self.alias}{ENTRY_SUFFIX}"

    def to_x509(self) -> x509.Certificate:
        return x509.load_der_x509_certificate(self.certificate)

    def to_dict(self) -> Dict[str, Any]:
        cert = self.to_x509()
        return {
            "alias": self.alias,
            "subject": cert.subject.rfc4514_string(),
            "issuer": cert.issuer.rfc4514_string(),
            "fingerprint_sha256": certificate_fingerprint(cert),
            "not_before": cert.not_valid_before_utc.isoformat(),
            "not_after": cert.not_valid_after_utc.isoformat(),
        }


class TrustStore:
    """
    Ordered alias -> certificate mapping persisted in a single container file.

    The in-memory snapshot is reloaded from disk before every query or
    mutation, so the file stays the single source of truth. The store does
    no locking of its own; callers serialize access.
    """

    def __init__(self, path: Union[str, Path], passphrase: bytes = CONTAINER_PASSPHRASE):
        self.path = Path(path)
        self._passphrase = passphrase
        self._entries: Dict[str, TrustedCertificateEntry] = {}

    def exists(self) -> bool:
        return self.path.is_file()

    def load(self) -> Dict[str, TrustedCertificateEntry]:
        """
        Read the durable container into the in-memory snapshot.

        Returns:
            Copy of the snapshot, alias -> entry in container order

        Raises:
            StorageUnavailable: If the file cannot be read
            StorageCorrupt: If the file cannot be parsed
        """
        self._entries = self._read_container(self.path)
        logger.debug(f"Loaded trust store {self.path} ({len(self._entries)} entries)")
        return dict(self._entries)

    def save(self) -> None:
        """
        Persist the current snapshot.

        Written to a temp file next to the store, read back to confirm the
        entry count, then renamed over the store. A failure leaves the
        previous file untouched.
        """
        self._write_container(self._entries)
        logger.info(f"Saved trust store {self.path} ({len(self._entries)} entries)")

    def add_entry(self, cert: x509.Certificate) -> TrustedCertificateEntry:
        """
        Insert or replace the entry for a certificate and persist the store.

        Two certificates with the same subject share an alias; the newer one
        replaces the older.

        Args:
            cert: Certificate to accept

        Returns:
            The committed entry
        """
        self.load()
        entry = TrustedCertificateEntry.from_certificate(cert)

        previous = self._entries.get(entry.alias)
        if previous is not None and previous.certificate != entry.certificate:
            logger.warning(
                f"Alias {entry.alias} already holds a different certificate for "
                f"'{cert.subject.rfc4514_string()}', replacing it"
            )

        self._entries[entry.alias] = entry
        try:
            self.save()
        except Exception:
            # the file is unchanged, drop the uncommitted entry
            if previous is None:
                del self._entries[entry.alias]
            else:
                self._entries[entry.alias] = previous
            raise
        return entry

    def seed_from(self, source: Union[str, Path]) -> bool:
        """
        Copy a bundled container verbatim into place if no store exists yet.

        Returns:
            True if the store was seeded, False if it already existed
        """
        if self.exists():
            logger.debug(f"Trust store {self.path} already present, not seeding")
            return False

        source = Path(source)
        logger.info(f"Seeding trust store {self.path} from {source}")
        tmp_path = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=f".{self.path.name}.", suffix=".seed", dir=self.path.parent)
            os.close(fd)
            tmp_path = Path(tmp_name)
            shutil.copyfile(source, tmp_path)
            os.replace(tmp_path, self.path)
        except OSError as e:
            logger.error(f"Seeding trust store from {source} failed: {e}")
            raise StorageUnavailable(f"Cannot seed trust store from {source}: {e}") from e
        finally:
            if tmp_path is not None and tmp_path.exists():
                tmp_path.unlink()
        return True

    def _read_container(self, path: Path) -> Dict[str, TrustedCertificateEntry]:
        try:
            data = path.read_bytes()
        except OSError as e:
            logger.error(f"Cannot read trust store {path}: {e}")
            raise StorageUnavailable(f"Cannot read trust store {path}: {e}") from e

        if not data:
            raise StorageCorrupt(f"Trust store {path} is empty")

        entries: Dict[str, TrustedCertificateEntry] = {}
        try:
            with pyzipper.AESZipFile(io.BytesIO(data), "r") as zf:
                zf.setpassword(self._passphrase)
                for info in zf.infolist():
                    if info.is_dir():
                        continue
                    if not info.filename.endswith(ENTRY_SUFFIX):
                        raise StorageCorrupt(f"Unexpected member '{info.filename}' in trust store {path}")
                    alias = info.filename[:-len(ENTRY_SUFFIX)]
                    der = zf.read(info)
                    x509.load_der_x509_certificate(der)
                    entries[alias] = TrustedCertificateEntry(alias=alias, certificate=der)
        except StorageCorrupt:
            raise
        except _CONTAINER_ERRORS as e:
            logger.error(f"Trust store {path} is corrupt: {e}")
            raise StorageCorrupt(f"Cannot parse trust store {path}: {e}") from e

        return entries

    def _write_container(self, entries: Dict[str, TrustedCertificateEntry]) -> None:
        tmp_path: Optional[Path] = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent)
            tmp_path = Path(tmp_name)

            with os.fdopen(fd, "wb") as fh:
                with pyzipper.AESZipFile(
                    fh,
                    "w",
                    compression=pyzipper.ZIP_DEFLATED,
                    encryption=pyzipper.WZ_AES
                ) as zf:
                    zf.setpassword(self._passphrase)
                    for entry in entries.values():
                        zf.writestr(entry.member_name, entry.certificate)
                fh.flush()
                os.fsync(fh.fileno())

            written = self._read_container(tmp_path)
            if len(written) != len(entries):
                raise StorageCorrupt(
                    f"Trust store round trip mismatch: wrote {len(entries)} entries, read back {len(written)}"
                )

            os.replace(tmp_path, self.path)
        except OSError as e:
            logger.error(f"Cannot write trust store {self.path}: {e}")
            raise StorageUnavailable(f"Cannot write trust store {self.path}: {e}") from e
        finally:
            if tmp_path is not None and tmp_path.exists():
                tmp_path.unlink()
