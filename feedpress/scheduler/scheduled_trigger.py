"""
FeedPress Scheduled Trigger
===========================

Parameterless entry point for timed runs, typically invoked by cron, a
systemd timer, or the built-in interval loop. A failed run is logged and
re-raised so the caller's own retry policy sees it.
"""

import asyncio
import uuid
from datetime import datetime, timezone
from typing import Optional

from ..database.models import ProcessingResult
from ..processing.pipeline import ProcessingPipeline
from ..storage.config_repository import ConfigRepository
from ..utils.logging import get_logger_for_component
from ..utils.exceptions import handle_exception


class ScheduledTrigger:
    """Runs the pipeline once per trigger, or on the configured interval."""

    def __init__(self, pipeline: ProcessingPipeline, config_repository: ConfigRepository):
        self.pipeline = pipeline
        self.config_repository = config_repository
        self.logger = get_logger_for_component("scheduler")
        self.runs_completed = 0
        self.runs_failed = 0

    async def run_once(self) -> ProcessingResult:
        """Run the pipeline once.

        Raises:
            Exception: Whatever aborted the run, after logging it
        """
        execution_id = f"run_{datetime.now(timezone.utc).strftime('%Y%m%d_%H%M%S')}_{uuid.uuid4().hex[:6]}"
        self.logger.info("Scheduled trigger fired", extra={"execution_id": execution_id})

        try:
            result = await self.pipeline.process_all_feeds()
        except Exception as e:
            self.runs_failed += 1
            handle_exception(e, self.logger, "scheduled trigger", {"execution_id": execution_id})
            raise

        self.runs_completed += 1
        self.logger.info(
            "Scheduled processing completed",
            extra={"execution_id": execution_id, **result.to_dict()},
        )
        return result

    async def run_forever(self, max_runs: Optional[int] = None) -> None:
        """Run repeatedly, sleeping ``schedule_interval_minutes`` between runs.

        The interval is re-read from the stored configuration after every
        run. A failed run is logged by ``run_once`` and the loop continues.

        Args:
            max_runs: Stop after this many runs (None = run until cancelled)
        """
        runs = 0
        while max_runs is None or runs < max_runs:
            try:
                await self.run_once()
            except Exception:
                self.logger.warning("Run failed; waiting for next interval")
            runs += 1

            if max_runs is not None and runs >= max_runs:
                break

            interval = self.config_repository.load_config().schedule_interval_minutes
            self.logger.info(f"Next run in {interval} minutes")
            await asyncio.sleep(interval * 60)
