"""Seed the administrator user from ADMIN_EMAIL / ADMIN_PASSWORD."""

import sys

from app import create_app
from services.bootstrap import ensure_admin


def main() -> int:
    app = create_app()
    with app.app_context():
        admin = ensure_admin(
            app.config.get("ADMIN_EMAIL"),
            app.config.get("ADMIN_PASSWORD"),
            app.config.get("ADMIN_NAME"),
        )
        if admin is None:
            print("ADMIN_EMAIL and ADMIN_PASSWORD must be set.", file=sys.stderr)
            return 1
        print(f"Admin user ready: {admin.email}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
