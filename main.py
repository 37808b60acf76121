"""
Command-line runner for the TravelOps back-office client.

Signs in (when no session is stored), opens the dashboard page, and prints a
summary of what the signed-in user can see.
"""
import logging
import sys

from travelops.config import Config
from travelops.panel import Panel
from travelops.services.api_client import ApiError
from travelops.services.auth_service import LoginError
from travelops.utils.auth_utils import get_user


def main() -> int:
    config = Config()
    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.INFO),
        format='%(asctime)s %(levelname)s %(name)s: %(message)s'
    )

    print("\n" + "=" * 70)
    print(f"TravelOps back-office client -> {config.base_url}")
    print("=" * 70 + "\n")

    with Panel(config) as panel:
        if not panel.auth.is_logged_in():
            if not config.username or not config.password:
                print("No stored session. Set TRAVELOPS_USERNAME and TRAVELOPS_PASSWORD to sign in.")
                return 1
            try:
                panel.auth.login(config.username, config.password)
            except LoginError as e:
                print(f"Login failed: {e}")
                return 1

        if not panel.open_page(config.home_page):
            print("Stored session was rejected; please sign in again.")
            return 1

        user = get_user(panel.context.local_storage)
        print(f"Signed in as {user.get('name') or user.get('username')} ({user.get('type')})")

        info = panel.token_info()
        if info and info.get('remaining_seconds') is not None:
            print(f"Token valid for {info['remaining_seconds'] / 60:.1f} more minutes")

        for name, resource in panel.dashboards.items():
            try:
                records = resource.list()
                print(f"  {name:<15} {len(records):>6} records")
            except ApiError as e:
                print(f"  {name:<15} unavailable: {e}")

    return 0


if __name__ == '__main__':
    sys.exit(main())
