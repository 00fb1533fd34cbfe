#!/usr/bin/env python3
import os

import requests
from datetime import datetime

URL = os.getenv("CERTTRUST_HEALTH_URL", "http://127.0.0.1:8000/health")

def main():
    try:
        resp = requests.get(URL, timeout=5)
        resp.raise_for_status()
        data = resp.json()
    except Exception as e:
        print(f"❌ Failed to fetch health: {e}")
        return

    print("\n📋 Trust Store Health Report")
    print("-" * 30)
    print(f"Status         : {data['status'].upper()}")
    print(f"Timestamp      : {data['timestamp']}")
    print(f"Checked at     : {datetime.now().isoformat(timespec='seconds')}")
    print(f"Uptime         : {data['uptime']} seconds")
    print(f"Initialization : {data['initialization']}\n")

    store = data.get("trust_store", {})
    print("🔐 Trust Store")
    print(f"   Status  : {store.get('status', 'unknown').upper()}")
    print(f"   Path    : {store.get('path', '-')}")
    print(f"   Entries : {store.get('entries', '-')}")
    if store.get("error"):
        print(f"   Error   : {store['error']}")

if __name__ == "__main__":
    main()
