"""
First admin bootstrap script.

Creates (or promotes) the first admin account from ADMIN_INIT_PHONE and
ADMIN_INIT_PASSWORD, or from the command line. Does nothing when an
admin already exists.

Usage:
    python -m backend.seed_admin [PHONE PASSWORD]
"""

import asyncio
import sys

from backend.app.core.config import settings
from backend.app.core.exceptions import InvalidInputError
from backend.app.db.session import AsyncSessionLocal, Base, engine
from backend.app.services.accounts import ensure_first_admin

# Register tables with Base
from backend.app.models.user import User
from backend.app.models.refresh_token import RefreshToken
from backend.app.models.ledger_entry import LedgerEntry
from backend.app.models.idempotency_key import IdempotencyKey


async def seed_admin(phone: str, password: str) -> int:
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

        async with AsyncSessionLocal() as db:
            try:
                await ensure_first_admin(db, phone, password)
            except InvalidInputError as exc:
                print(f"admin init failed: {exc.message}", file=sys.stderr)
                return 1
    finally:
        await engine.dispose()

    print("admin init completed")
    return 0


if __name__ == "__main__":
    if len(sys.argv) == 3:
        phone, password = sys.argv[1], sys.argv[2]
    else:
        phone, password = settings.admin_init_phone, settings.admin_init_password
    sys.exit(asyncio.run(seed_admin(phone, password)))
