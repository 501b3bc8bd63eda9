"""Process due assignment and payment reminders once; meant to be run from cron every few minutes."""
from __future__ import annotations

import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT / "src") not in sys.path:
    sys.path.insert(0, str(REPO_ROOT / "src"))

from lms_portal import create_app


def main() -> int:
    app = create_app()
    container = app.extensions["lms_container"]
    with app.app_context():
        result = container.reminder_service.process_pending()
        payments = container.payment_service.process_payment_reminders()
    print(f"processed={result.processed} failed={result.failed} notifications={result.notifications_sent}")
    print(f"payment_reminders={payments.reminded} overdue={payments.overdue} failed={payments.failed}")
    return 1 if result.failed or payments.failed else 0


if __name__ == "__main__":
    sys.exit(main())
