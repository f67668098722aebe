#!/usr/bin/env python3
"""
Expired Reservation Sweep

Moves pending purchases past their reservation deadline to `failed` and returns
their held inventory. Meant to run from cron / a scheduled job, e.g. every minute:

    python -m script.expire_stale_purchases --limit 200
"""

import argparse
import asyncio

from src.platform.config.di import container
from src.platform.database.orm_db_setting import dispose_engine
from src.platform.logging.loguru_io import Logger


async def main(limit: int) -> None:
    use_case = container.expire_purchase_use_case()
    try:
        expired = await use_case.expire_stale(limit=limit)
        print(f'✅ Expired {expired} stale purchase(s)')
    except Exception as e:
        Logger.base.exception('❌ [Expiry] Sweep failed')
        print(f'❌ Sweep failed: {e}')
        exit(1)
    finally:
        await dispose_engine()


if __name__ == '__main__':
    parser = argparse.ArgumentParser(description='Release inventory held by expired purchases')
    parser.add_argument('--limit', type=int, default=100, help='Max purchases per run')
    args = parser.parse_args()
    asyncio.run(main(args.limit))
