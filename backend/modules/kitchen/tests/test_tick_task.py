"""
Tests for the APScheduler-driven kitchen tick.
"""

import logging
import pytest
from unittest.mock import MagicMock

from modules.kitchen.models.kitchen_models import TickReport
from modules.kitchen.tasks.kitchen_tick_task import KitchenTickScheduler


@pytest.fixture
def mock_engine(clock):
    engine = MagicMock()
    engine.module_id = "timer-board"
    engine.config.TICK_INTERVAL_SECONDS = 1.0
    engine.tick.return_value = TickReport(ticked_at=clock.now())
    return engine


class TestKitchenTickScheduler:
    """Tick job behaviour"""

    def test_interval_defaults_to_config(self, mock_engine):
        assert KitchenTickScheduler(mock_engine).interval_seconds == 1.0
        assert KitchenTickScheduler(mock_engine, interval_seconds=5).interval_seconds == 5

    @pytest.mark.asyncio
    async def test_tick_job_runs_engine_tick(self, mock_engine):
        scheduler = KitchenTickScheduler(mock_engine)
        scheduler.is_running = True
        reports = []
        scheduler.add_listener(reports.append)

        await scheduler._tick_job()

        mock_engine.tick.assert_called_once()
        assert scheduler.last_report is mock_engine.tick.return_value
        assert reports == [mock_engine.tick.return_value]

    @pytest.mark.asyncio
    async def test_tick_job_skipped_when_stopped(self, mock_engine):
        scheduler = KitchenTickScheduler(mock_engine)

        await scheduler._tick_job()

        mock_engine.tick.assert_not_called()

    @pytest.mark.asyncio
    async def test_tick_job_logs_errors(self, mock_engine, caplog):
        mock_engine.tick.side_effect = RuntimeError("clock unavailable")
        scheduler = KitchenTickScheduler(mock_engine)
        scheduler.is_running = True

        with caplog.at_level(logging.ERROR):
            await scheduler._tick_job()

        assert "Error in kitchen tick job" in caplog.text
        assert scheduler.last_report is None

    @pytest.mark.asyncio
    async def test_shut_down_engine_notifies_nobody(self, mock_engine):
        mock_engine.tick.return_value = None
        scheduler = KitchenTickScheduler(mock_engine)
        scheduler.is_running = True
        listener = MagicMock()
        scheduler.add_listener(listener)

        await scheduler._tick_job()

        listener.assert_not_called()
        assert scheduler.last_report is None

    @pytest.mark.asyncio
    async def test_start_and_stop(self, engine):
        scheduler = KitchenTickScheduler(engine, interval_seconds=60)

        scheduler.start()
        try:
            status = scheduler.get_status()
            assert status["scheduler_running"] is True
            assert [job["id"] for job in status["jobs"]] == ["kitchen_tick_job"]

            scheduler.start()
            assert len(scheduler.scheduler.get_jobs()) == 1
        finally:
            scheduler.stop()

        assert scheduler.get_status() == {"scheduler_running": False, "jobs": []}

    @pytest.mark.asyncio
    async def test_tick_job_against_real_engine(self, engine, clock):
        engine.create_timer(30, timer_id="t-1")
        clock.advance(seconds=45)
        scheduler = KitchenTickScheduler(engine)
        scheduler.is_running = True

        await scheduler._tick_job()

        assert scheduler.last_report.reclassified_timer_ids == ["t-1"]
