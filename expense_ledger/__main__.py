"""
Startup check: `python -m expense_ledger`

Validates configuration and makes one read against the data service.
Exits non-zero if either fails.
"""

import asyncio
import sys

from expense_ledger.config import validate_all_settings
from expense_ledger.services.storage import SupabaseBackend


def main() -> int:
    results = validate_all_settings()
    for name in ("supabase", "app"):
        status = "ok" if results.get(name) else f"invalid ({results.get(f'{name}_error')})"
        print(f"{name}: {status}")

    if not results.get("supabase"):
        return 1

    # ping() reports connection failures as False
    reachable = asyncio.run(SupabaseBackend().ping())
    print(f"backend: {'reachable' if reachable else 'unreachable'}")
    return 0 if reachable else 1


if __name__ == "__main__":
    sys.exit(main())
