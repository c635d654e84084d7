"""
Tests for the reminder scheduler.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from apscheduler.triggers.cron import CronTrigger

from quote_tracker.config.settings import Settings
from quote_tracker.scheduler import REMINDER_JOB_ID, build_scheduler, run_reminder_sweep
from quote_tracker.services.notifications import SweepResult


class TestScheduler:
    
    def test_daily_job_registered(self):
        dispatcher = MagicMock()
        scheduler = build_scheduler(dispatcher, Settings(reminder_sweep_hour=7))
        
        job = scheduler.get_job(REMINDER_JOB_ID)
        
        assert job is not None
        assert isinstance(job.trigger, CronTrigger)
        assert str(job.trigger.fields[5]) == "7"
        assert job.args == (dispatcher,)
    
    @pytest.mark.anyio
    async def test_run_returns_counts(self):
        dispatcher = MagicMock()
        dispatcher.bulk_reminder_sweep = AsyncMock(return_value=SweepResult(3, 2, 1))
        
        assert await run_reminder_sweep(dispatcher) == {
            "processed": 3, "successful": 2, "failed": 1,
        }
    
    @pytest.mark.anyio
    async def test_run_survives_errors(self):
        dispatcher = MagicMock()
        dispatcher.bulk_reminder_sweep = AsyncMock(side_effect=RuntimeError("db down"))
        
        result = await run_reminder_sweep(dispatcher)
        
        assert result == {"processed": 0, "successful": 0, "failed": 0}
