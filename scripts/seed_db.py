from __future__ import annotations

import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT / "src") not in sys.path:
    sys.path.insert(0, str(REPO_ROOT / "src"))

from lms_portal import create_app
from lms_portal.database.bootstrap import DEMO_USERS, ensure_demo_data, init_db


def main() -> None:
    app = create_app(overrides={"AUTO_INIT_DB": False, "AUTO_SEED_DB": False})
    init_db(app, db_config=app.config.get("DB_CONFIG"))
    ensure_demo_data(app)

    print(f"OK: seeded database -> {app.config['SQLALCHEMY_DATABASE_URI'].split('@')[-1]}")
    for full_name, email, password, role in DEMO_USERS:
        print(f"  {role.value:<10} {email} / {password}")


if __name__ == "__main__":
    main()
