"""Best-effort activity log.

Entries are written after the business transaction has committed, in their
own session. A failure here is logged and dropped: the mutation it describes
stays committed, and an entry may be lost if the process dies in between.
"""
import logging
import re
from typing import Optional
from uuid import UUID

from fastapi import Request

from storeledger.core.enums import TransactionSource
from storeledger.db.activity_log import ActivityLog
from storeledger.db.database import Database

logger = logging.getLogger(__name__)


def adjustment_action(source: TransactionSource) -> str:
    # purchaseReceipt -> STOCK_ADJUSTED_PURCHASE_RECEIPT
    return "STOCK_ADJUSTED_" + re.sub(r"(?<!^)(?=[A-Z])", "_", source.value).upper()


class ActivityLogger:
    def __init__(self, db: Database):
        self.db = db

    async def record(
        self,
        action: str,
        details: str,
        user_id: Optional[UUID] = None,
        store_id: Optional[UUID] = None,
        entity_id=None,
        entity_type: Optional[str] = None,
    ) -> bool:
        try:
            async with self.db.session() as session:
                session.add(ActivityLog(
                    user_id=user_id,
                    store_id=store_id,
                    action=action,
                    entity_id=str(entity_id) if entity_id is not None else None,
                    entity_type=entity_type,
                    details=details,
                ))
                await session.commit()
        except Exception:
            logger.exception("Failed to write activity log entry %s for %s", action, entity_id)
            return False
        return True


async def log_activity(activity: Optional[ActivityLogger], **entry) -> None:
    if activity is not None:
        await activity.record(**entry)


def get_activity_logger(request: Request) -> ActivityLogger:
    return request.app.state.activity
