"""
Tests for the durable trust store container
"""

import os
import sys

import pytest
import pyzipper

from certtrust.certificates.storage import TrustStore, TrustedCertificateEntry
from certtrust.certificates.utils import alias_for_certificate
from certtrust.exceptions import StorageCorrupt, StorageUnavailable
from conftest import to_der


@pytest.fixture
def store(store_path, seed_store):
    """Store seeded from the bundled empty container"""
    store = TrustStore(store_path)
    store.seed_from(seed_store)
    return store


class TestTrustStoreLoad:
    """Reading the container"""

    def test_missing_file(self, store_path):
        """Test a missing store is reported as unavailable"""
        with pytest.raises(StorageUnavailable):
            TrustStore(store_path).load()

    def test_empty_file(self, store_path):
        """Test a zero-byte store is corrupt"""
        store_path.parent.mkdir(parents=True)
        store_path.write_bytes(b"")

        with pytest.raises(StorageCorrupt):
            TrustStore(store_path).load()

    def test_garbage_file(self, store_path):
        """Test a non-container file is corrupt"""
        store_path.parent.mkdir(parents=True)
        store_path.write_bytes(b"definitely not a zip archive")

        with pytest.raises(StorageCorrupt):
            TrustStore(store_path).load()

    def test_unexpected_member(self, store_path):
        """Test a container with foreign members is corrupt"""
        store_path.parent.mkdir(parents=True)
        with pyzipper.AESZipFile(store_path, "w") as zf:
            zf.writestr("notes.txt", b"hello")

        with pytest.raises(StorageCorrupt):
            TrustStore(store_path).load()

    def test_member_not_a_certificate(self, store_path):
        """Test an entry holding garbage bytes is corrupt"""
        store_path.parent.mkdir(parents=True)
        with pyzipper.AESZipFile(store_path, "w") as zf:
            zf.writestr("0badc0de.der", b"garbage")

        with pytest.raises(StorageCorrupt):
            TrustStore(store_path).load()

    def test_wrong_passphrase(self, store_path, seed_store, cert_factory):
        """Test a container written with another passphrase cannot be read"""
        cert, _ = cert_factory.self_signed()
        other = TrustStore(store_path, passphrase=b"another-passphrase")
        other.seed_from(seed_store)
        other.add_entry(cert)

        with pytest.raises(StorageCorrupt):
            TrustStore(store_path).load()

    def test_seed_container_is_empty(self, store):
        """Test the bundled seed loads as an empty store"""
        assert store.load() == {}


class TestTrustStoreMutation:
    """Adding entries and persisting them"""

    def test_add_entry_persists(self, store, store_path, cert_factory):
        """Test an added certificate is readable by a fresh store instance"""
        cert, _ = cert_factory.self_signed("nas.local")

        entry = store.add_entry(cert)
        reloaded = TrustStore(store_path).load()

        assert entry.alias == alias_for_certificate(cert)
        assert reloaded == {entry.alias: entry}
        assert reloaded[entry.alias].to_x509() == cert

    def test_entries_keep_insertion_order(self, store, cert_factory):
        """Test container order follows insertion order"""
        certs = [cert_factory.self_signed(f"host-{i}.local")[0] for i in range(3)]
        for cert in certs:
            store.add_entry(cert)

        assert list(store.load()) == [alias_for_certificate(c) for c in certs]

    def test_same_subject_latest_wins(self, store, cert_factory):
        """Test a second certificate for the same subject replaces the first"""
        first, _ = cert_factory.self_signed("camera.local")
        second, _ = cert_factory.self_signed("camera.local")

        store.add_entry(first)
        store.add_entry(second)
        entries = store.load()

        assert len(entries) == 1
        assert entries[alias_for_certificate(second)].certificate == to_der(second)

    def test_readd_same_certificate(self, store, cert_factory):
        """Test adding the same certificate twice keeps one entry"""
        cert, _ = cert_factory.self_signed()

        store.add_entry(cert)
        store.add_entry(cert)

        assert len(store.load()) == 1

    def test_add_entry_without_store_file(self, store_path, cert_factory):
        """Test mutation requires an existing store"""
        cert, _ = cert_factory.self_signed()

        with pytest.raises(StorageUnavailable):
            TrustStore(store_path).add_entry(cert)

    def test_failed_replace_keeps_previous_file(self, store, store_path, cert_factory, monkeypatch):
        """Test a failing rename leaves the old store and no temp files"""
        kept, _ = cert_factory.self_signed("kept.local")
        store.add_entry(kept)
        before = store_path.read_bytes()

        def failing_replace(src, dst):
            raise OSError("disk full")

        monkeypatch.setattr("certtrust.certificates.storage.trust_store.os.replace", failing_replace)
        lost, _ = cert_factory.self_signed("lost.local")

        with pytest.raises(StorageUnavailable):
            store.add_entry(lost)

        monkeypatch.undo()
        assert store_path.read_bytes() == before
        assert sorted(p.name for p in store_path.parent.iterdir()) == [store_path.name]
        assert list(store.load()) == [alias_for_certificate(kept)]

    @pytest.mark.skipif(sys.platform == "win32", reason="POSIX permissions")
    def test_saved_store_is_private(self, store, store_path, cert_factory):
        """Test the written store is readable by the owner only"""
        cert, _ = cert_factory.self_signed()
        store.add_entry(cert)

        assert os.stat(store_path).st_mode & 0o777 == 0o600

    def test_entry_to_dict(self, cert_factory):
        """Test entry description fields"""
        cert, _ = cert_factory.self_signed("router.local")
        info = TrustedCertificateEntry.from_certificate(cert).to_dict()

        assert info["alias"] == alias_for_certificate(cert)
        assert info["subject"] == "CN=router.local"
        assert info["issuer"] == "CN=router.local"
        assert len(info["fingerprint_sha256"]) == 64


class TestTrustStoreSeeding:
    """First-run seeding"""

    def test_seed_when_absent(self, store_path, seed_store):
        """Test seeding creates the store and its directory"""
        store = TrustStore(store_path)

        assert store.seed_from(seed_store) is True
        assert store.exists()
        assert store_path.read_bytes() == seed_store.read_bytes()

    def test_seed_does_not_overwrite(self, store, store_path, seed_store, cert_factory):
        """Test an existing store is never replaced by the seed"""
        cert, _ = cert_factory.self_signed()
        store.add_entry(cert)
        before = store_path.read_bytes()

        assert store.seed_from(seed_store) is False
        assert store_path.read_bytes() == before

    def test_seed_missing_source(self, store_path, tmp_path):
        """Test an unreadable seed is reported and leaves nothing behind"""
        store = TrustStore(store_path)

        with pytest.raises(StorageUnavailable):
            store.seed_from(tmp_path / "missing.zip")

        assert not store.exists()
        assert list(store_path.parent.iterdir()) == []
