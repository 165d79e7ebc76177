"""
Reconciliation Propositions <-> Locations / Proposal <-> Rental reconciliation.

Usage:
    python -m scripts.run_reconciliation

Pour un cron externe quand le planificateur integre est desactive
(RECONCILIATION_ENABLED=false). Execute aussi la maintenance des statuts.
For an external cron when the in-process scheduler is disabled
(RECONCILIATION_ENABLED=false). Also runs status maintenance.
"""

import asyncio
import logging
import os
import sys

# Rendre le package billboards importable / Make billboards package importable
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from billboards.database import init_db
from billboards.services.scheduler import maintenance_job


async def main() -> int:
    await init_db()
    stats = await maintenance_job()
    if stats is None:
        print("ERREUR: reconciliation failed, see logs")
        return 1
    if stats.skipped:
        print("[SKIP] Lease held by another instance")
        return 0
    print(
        f"[OK] scanned={stats.proposals_scanned} created={stats.rentals_created} "
        f"corrected={stats.rentals_corrected} removed={stats.rentals_removed} "
        f"orphans={stats.orphans_removed} conflicts={stats.conflicts} failures={stats.failures}"
    )
    return 0 if not stats.failures else 1


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    sys.exit(asyncio.run(main()))
