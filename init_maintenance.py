"""
Initialize Maintenance Configuration Script
Run this script once after applying the migrations to seed the maintenance
singleton, or with --reset to switch maintenance mode off after an incident.
"""

import os
import sys
from datetime import datetime, timezone

from supabase import create_client
from dotenv import load_dotenv

from gradebook.core.maintenance import get_current_config, update_config
from gradebook.models.maintenance import MaintenanceConfig, MaintenanceUpdate

# Load environment variables
load_dotenv()

RESET_REASON = "Maintenance mode reset from init_maintenance"


def reset_maintenance(db_client, actor_id: str, now: datetime) -> MaintenanceConfig:
    """Switch maintenance mode off, recording a ``disabled`` history entry"""
    return update_config(
        db_client,
        MaintenanceUpdate(is_maintenance_mode=False, reason=RESET_REASON),
        actor_id,
        now,
    )


def init_maintenance(reset: bool = False):
    """Create the system_maintenance row if it does not exist yet"""

    supabase_url = os.getenv("SUPABASE_URL")
    supabase_service_key = os.getenv("SUPABASE_SERVICE_KEY")

    if not supabase_url or not supabase_service_key:
        print("❌ Error: SUPABASE_URL and SUPABASE_SERVICE_KEY must be set in .env file")
        sys.exit(1)

    supabase = create_client(supabase_url, supabase_service_key)

    print("\n🛠  Maintenance Configuration")
    print("=" * 50)

    try:
        config = get_current_config(supabase)
        print(f"✅ Configuration ready: {config.id}")
        print(f"   Maintenance mode: {'ON' if config.is_maintenance_mode else 'OFF'}")

        if reset and config.is_maintenance_mode:
            actor_id = input("Enter your superadmin user id: ").strip()
            if not actor_id:
                print("❌ Error: A user id is required to record the reset")
                sys.exit(1)

            reset_maintenance(supabase, actor_id, datetime.now(timezone.utc))
            print("✅ Maintenance mode switched OFF")

        print("=" * 50)
        print()

    except Exception as e:
        print(f"\n❌ Error initializing maintenance configuration: {str(e)}")
        sys.exit(1)


if __name__ == "__main__":
    init_maintenance(reset="--reset" in sys.argv[1:])
