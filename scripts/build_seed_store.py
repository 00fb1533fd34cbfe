#!/usr/bin/env python3
"""
Build a bootstrap trust store container from a PEM bundle.

The result can be shipped as CERTTRUST_SEED_STORE so that a private CA is
trusted from the first start.

Usage: build_seed_store.py <bundle.pem> <output.zip>
"""

import logging
import sys
from pathlib import Path

import certtrust
from certtrust.certificates import load_pem_bundle
from certtrust.certificates.storage import TrustStore
from certtrust.exceptions import CertTrustError

EMPTY_STORE = Path(certtrust.__file__).parent / "resources" / "default_truststore.zip"


def build_seed_store(bundle_path: Path, output_path: Path) -> int:
    """Write every certificate of the bundle into a new container, return the entry count"""
    if output_path.exists():
        raise FileExistsError(f"{output_path} already exists")

    certificates = load_pem_bundle(bundle_path.read_bytes())
    store = TrustStore(output_path)
    store.seed_from(EMPTY_STORE)
    for cert in certificates:
        entry = store.add_entry(cert)
        print(f"✅ {entry.alias}  {cert.subject.rfc4514_string()}")
    return len(store.load())


def main() -> int:
    logging.basicConfig(level=logging.WARNING, format="%(levelname)s - %(message)s")
    if len(sys.argv) != 3:
        print(__doc__)
        return 2

    try:
        count = build_seed_store(Path(sys.argv[1]), Path(sys.argv[2]))
    except (OSError, CertTrustError) as e:
        print(f"❌ Failed to build seed store: {e}")
        return 1

    print(f"\n📦 Wrote {count} entries to {sys.argv[2]}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
