"""Tests for detached background tasks."""

import asyncio
import logging

from registration.tasks import BackgroundTasks


class TestBackgroundTasks:
    """Tests for BackgroundTasks."""

    def test_spawned_task_runs_detached(self):
        tasks = BackgroundTasks()
        done = []

        async def work():
            await asyncio.sleep(0.01)
            done.append(True)

        async def run():
            tasks.spawn(work(), name="work")
            assert tasks.pending == 1
            remaining = await tasks.drain(1.0)
            return remaining

        assert asyncio.run(run()) == 0
        assert done == [True]
        assert tasks.pending == 0

    def test_failure_is_logged(self, caplog):
        tasks = BackgroundTasks()

        async def boom():
            raise RuntimeError("readahead exploded")

        async def run():
            tasks.spawn(boom(), name="readahead:Pester")
            await tasks.drain(1.0)
            await asyncio.sleep(0)

        with caplog.at_level(logging.ERROR, logger="registration.tasks"):
            asyncio.run(run())

        assert "readahead:Pester" in caplog.text
        assert "readahead exploded" in caplog.text
        assert tasks.pending == 0

    def test_drain_reports_still_running(self):
        tasks = BackgroundTasks()

        async def slow():
            await asyncio.sleep(1.0)

        async def run():
            tasks.spawn(slow())
            return await tasks.drain(0.01)

        assert asyncio.run(run()) == 1

    def test_drain_without_tasks(self):
        assert asyncio.run(BackgroundTasks().drain(0.1)) == 0
