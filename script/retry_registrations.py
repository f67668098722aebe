#!/usr/bin/env python3
"""
Registry Retry Pass

Re-registers tickets whose registry mirroring failed (below the attempt cap) or
never ran. The API process runs the same pass periodically; this script is for
one-off catch-up after a registry outage:

    python -m script.retry_registrations --limit 500
"""

import argparse
import asyncio

from src.platform.config.di import container
from src.platform.database.orm_db_setting import dispose_engine
from src.platform.logging.loguru_io import Logger


async def main(limit: int) -> None:
    use_case = container.retry_registrations_use_case()
    try:
        minted = await use_case.execute(limit=limit)
        print(f'✅ {minted} purchase(s) registered')
    except Exception as e:
        Logger.base.exception('❌ [Registry] Retry pass failed')
        print(f'❌ Retry pass failed: {e}')
        exit(1)
    finally:
        await dispose_engine()


if __name__ == '__main__':
    parser = argparse.ArgumentParser(description='Retry failed or pending registry registrations')
    parser.add_argument('--limit', type=int, default=None, help='Max tickets per run')
    args = parser.parse_args()
    asyncio.run(main(args.limit))
