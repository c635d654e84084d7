"""
Scheduled job routes, called by an external cron with the shared secret.
"""

from fastapi import APIRouter, Depends

from quote_tracker.api.dependencies import DispatcherDep, require_cron_secret
from quote_tracker.schemas import ReminderSweepResponse
from quote_tracker.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(dependencies=[Depends(require_cron_secret)])


@router.post("/reminders", response_model=ReminderSweepResponse)
async def run_reminder_sweep(dispatcher: DispatcherDep):
    """Remind clients whose quotes are still pending after the threshold."""
    logger.info("reminder_sweep_triggered", source="cron_endpoint")
    result = await dispatcher.bulk_reminder_sweep()
    return result.to_dict()
