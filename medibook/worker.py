"""arq worker that delivers persisted appointment reminders.

Run with ``arq medibook.worker.WorkerSettings``.
"""

import asyncio
import logging
from typing import Any, Dict

from arq import cron
from arq.connections import RedisSettings

from medibook.services.db import get_session, init_db
from medibook.services.notifications import get_dispatcher
from medibook.services.reminders import dispatch_due_reminders
from medibook.utils.config import get_settings
from medibook.utils.logging_setup import configure_logging

LOGGER = logging.getLogger(__name__)

settings = get_settings()


def run_reminder_pass() -> Dict[str, int]:
    """Send every reminder that is due now."""

    with get_session() as session:
        summary = dispatch_due_reminders(session, get_dispatcher())
    return {"sent": summary.sent, "failed": summary.failed, "skipped": summary.skipped}


async def dispatch_reminders(ctx: Dict[str, Any]) -> Dict[str, int]:
    return await asyncio.to_thread(run_reminder_pass)


async def startup(ctx: Dict[str, Any]) -> None:
    configure_logging(settings.log_level)
    init_db()
    LOGGER.info("Reminder worker started")


class WorkerSettings:
    redis_settings = RedisSettings.from_dsn(settings.redis_url)
    on_startup = startup
    cron_jobs = [cron(dispatch_reminders, run_at_startup=True)]
