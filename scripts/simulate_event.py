"""
Simulate a lead INSERT against a running relay.

Posts a synthetic "Nuevo Lead" notification, exactly as the database trigger
would, and prints the relay's response. Useful to verify the secret, the
attribution API credentials and the dispatch table end to end.

Usage:
    python scripts/simulate_event.py --url http://localhost:8000 --secret <WEBHOOK_SECRET>
"""

import argparse
import json
import random
import sys
from datetime import datetime, timezone

import httpx


def build_test_payload(table: str) -> dict:
    """Synthetic INSERT notification with a random lead id."""

    now = datetime.now(timezone.utc).isoformat()
    return {
        "type": "INSERT",
        "table": table,
        "record": {
            "lead_id": f"test-lead-{random.randint(0, 999)}",
            "estado_lead": "Nuevo Lead",
            "email": "test_simulation@example.com",
            "telefono": "+525512345678",
            "nombre": "Simulated User",
            "fecha_conversion": now,
            "score_lead": 10,
            # Fields the database adds on insert
            "created_at": now,
            "updated_at": now,
        },
        "old_record": None,
    }


def simulate(url: str, secret: str, table: str, timeout: float) -> int:
    endpoint = f"{url.rstrip('/')}/api/webhook/meta"
    payload = build_test_payload(table)

    try:
        response = httpx.post(endpoint, params={"secret": secret}, json=payload, timeout=timeout)
    except httpx.HTTPError as e:
        print(f"[ERROR] Network error: {e}")
        return 1

    try:
        body = response.json()
    except ValueError:
        body = response.text

    if response.is_success:
        print("[SUCCESS] Simulation accepted")
    else:
        print(f"[ERROR] Simulation failed (HTTP {response.status_code})")
    print(json.dumps(body, indent=2) if isinstance(body, (dict, list)) else body)
    return 0 if response.is_success else 1


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Send a synthetic lead INSERT to the relay")
    parser.add_argument("--url", default="http://localhost:8000", help="Relay base URL")
    parser.add_argument("--secret", required=True, help="WEBHOOK_SECRET configured on the relay")
    parser.add_argument("--table", default="leads_formularios_optimizada", help="Source table name")
    parser.add_argument("--timeout", type=float, default=15.0, help="Request timeout in seconds")
    args = parser.parse_args()
    sys.exit(simulate(args.url, args.secret, args.table, args.timeout))
