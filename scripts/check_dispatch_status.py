"""
Check relay status - recent dispatched events and leads with diagnostics.
"""

import argparse
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from repositories.client import create_supabase_client, load_config
from repositories.dispatch_repository import DispatchRepository
from repositories.lead_repository import LeadRepository
from services.activity_service import ActivityService


def check_dispatch_status(limit: int = 20):
    """Print recent dispatches and flagged leads."""

    config = load_config()
    supabase = create_supabase_client()
    service = ActivityService(
        leads=LeadRepository(supabase, config),
        dispatches=DispatchRepository(supabase, config),
    )
    activity = service.recent_activity(limit)

    print("=" * 70)
    print("RECENT DISPATCHES")
    print("=" * 70)
    if not activity.dispatches:
        print("(none)")
    for record in activity.dispatches:
        print(
            f"{record.sent_at:%Y-%m-%d %H:%M:%S}  {record.event_name:<18} "
            f"{record.value:>8g}  {record.effective_identity}"
        )

    print("\n" + "=" * 70)
    print("LEADS WITH DIAGNOSTICS")
    print("=" * 70)
    if not activity.flagged:
        print("(none)")
    for lead in activity.flagged:
        when = f"{lead.updated_at:%Y-%m-%d %H:%M:%S}" if lead.updated_at else "-" * 19
        marker = "WARN " if lead.severity == "warning" else "ERROR"
        print(f"{when}  [{marker}] {lead.lead_id or 'N/A'}: {lead.diagnostic}")

    print("-" * 70)
    warnings = sum(1 for lead in activity.flagged if lead.severity == "warning")
    print(f"Dispatched: {len(activity.dispatches)}  Warnings: {warnings}  "
          f"Errors: {len(activity.flagged) - warnings}")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Show recent relay activity")
    parser.add_argument("--limit", type=int, default=20, help="Entries per list (default: 20)")
    args = parser.parse_args()
    check_dispatch_status(args.limit)
