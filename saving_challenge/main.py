"""
Engine entry point: wires storage, policy, scheduler and the engagement service.

    python -m saving_challenge.main
"""
import asyncio
import logging
import random

from saving_challenge.application.delivery import FanOutDeliverySink, LoggingDeliverySink, TelegramDeliverySink
from saving_challenge.application.engagement import EngagementService
from saving_challenge.application.notification_policy import NotificationPolicyEngine
from saving_challenge.application.scheduler import NotificationScheduler
from saving_challenge.config import Settings, get_settings
from saving_challenge.infrastructure.db.session import get_session_factory, init_db
from saving_challenge.infrastructure.db.storage import SqlAlchemyStorage

logger = logging.getLogger(__name__)


def build_service(settings: Settings | None = None, storage=None) -> EngagementService:
    """Assemble the engine from settings. Pass storage to override the database."""
    settings = settings or get_settings()
    if storage is None:
        init_db()
        storage = SqlAlchemyStorage(get_session_factory())

    sinks = [LoggingDeliverySink()]
    telegram = TelegramDeliverySink(settings)
    if telegram.configured:
        sinks.append(telegram)

    rng = random.Random()
    policy = NotificationPolicyEngine(storage, FanOutDeliverySink(*sinks), settings=settings, rng=rng)
    scheduler = NotificationScheduler(policy, settings=settings, rng=rng)
    return EngagementService(storage, policy, scheduler=scheduler, settings=settings, rng=rng)


async def run() -> None:
    service = build_service()
    await service.start()
    try:
        await asyncio.Event().wait()
    finally:
        service.stop()


def main() -> None:
    settings = get_settings()
    logging.basicConfig(level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")


if __name__ == "__main__":
    main()
