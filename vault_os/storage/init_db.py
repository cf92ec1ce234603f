# Copyright (c) 2026 VaultOS Contributors. All Rights Reserved.

"""
Database Initialization — create the tenants/users/vaults tables.

    python -m vault_os.storage.init_db
"""

import asyncio
import logging

from vault_os.core.logging import setup_logging
from vault_os.storage.database import close_db, create_all_tables

# Register the ORM tables on Base.metadata
import vault_os.storage.models  # noqa: F401

logger = logging.getLogger("vault.init_db")


async def main():
    setup_logging()
    logger.info("Creating VaultOS tables")
    try:
        await create_all_tables()
    finally:
        await close_db()
    logger.info("Tables ready")


if __name__ == "__main__":
    asyncio.run(main())
