"""
Automated renewal of recurring contracts
Renews every auto-renewal contract whose last session ends today (civil date)
"""

import logging
import time
from datetime import date
from typing import Optional

from sqlalchemy.orm import Session

from ..domain.contracts.renewal_service import RenewalService
from ..domain.scheduling.time_calculator import today_local
from ..exceptions import SchedulingError

logger = logging.getLogger(__name__)


def run_daily_renewal_job(
    db: Session, renewal_service: Optional[RenewalService] = None, today: Optional[date] = None
) -> dict:
    """
    Renew contracts expiring today
    Should be run as a scheduled job (daily cron, just after midnight UTC-3)

    A contract is skipped when its patient already has sessions in another
    contract ending later, so running the job twice on the same day creates
    nothing new.

    Returns:
        dict: Summary of the run
    """
    service = renewal_service or RenewalService(db)
    today = today or today_local()
    started = time.time()

    summary = {
        "processedCount": 0,
        "renewedCount": 0,
        "skippedAlreadyRenewed": 0,
        "skippedNoSlots": 0,
        "totalSlotsCreated": 0,
        "errors": [],
    }

    logger.info(f"🔄 Starting daily renewal job for {today}")

    try:
        expiring = service.find_contracts_expiring_on(today)
        summary["processedCount"] = len(expiring)
        logger.info(f"📋 {len(expiring)} contract(s) with auto-renewal ending on {today}")

        for contract, contract_end in expiring:
            try:
                if service.is_already_renewed(contract, contract_end):
                    summary["skippedAlreadyRenewed"] += 1
                    logger.info(f"⏭️ Contract {contract.short_id} already renewed, skipping")
                    continue

                result = service.renew_contract_automatically(contract)
                if result["createdCount"] == 0:
                    summary["skippedNoSlots"] += 1
                    logger.warning(f"⚠️ Contract {contract.short_id}: no session could be booked")
                    continue

                summary["renewedCount"] += 1
                summary["totalSlotsCreated"] += result["createdCount"]
            except SchedulingError as e:
                logger.error(f"❌ Failed to renew contract {contract.short_id}: {e.message}")
                summary["errors"].append(f"Contrato {contract.short_id}: {e.message}")
            except Exception as e:
                logger.error(f"❌ Failed to renew contract {contract.short_id}: {str(e)}")
                summary["errors"].append(f"Contrato {contract.short_id}: {str(e)}")

    except Exception as e:
        logger.error(f"❌ Daily renewal job failed: {str(e)}")
        summary["errors"].append(f"Erro fatal: {str(e)}")

    elapsed = time.time() - started
    logger.info(
        f"✅ Renewal job complete in {elapsed:.2f}s: "
        f"{summary['renewedCount']}/{summary['processedCount']} renewed, "
        f"{summary['skippedAlreadyRenewed']} already renewed, "
        f"{summary['skippedNoSlots']} without slots, "
        f"{summary['totalSlotsCreated']} session(s) created, "
        f"{len(summary['errors'])} error(s)"
    )
    return summary
