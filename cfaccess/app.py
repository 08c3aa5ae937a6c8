from __future__ import annotations

import logging
import signal
from threading import Event

from .alerts import Notifier, Transport
from .health import HealthServer
from .policy import PolicyStore
from .reconciler import Reconciler
from .resolver import AddressResolver
from .runtime import ProcessContext
from .scheduler import CronScheduler, InvalidSchedule
from .settings import Settings

logger = logging.getLogger(__name__)

STARTED_MESSAGE = "🚀 Cloudflare IP Updater started - Test notification"
STOPPED_MESSAGE = "⏹️ Cloudflare IP Updater stopped"


def build_notifier(settings: Settings, transport: Transport | None = None) -> Notifier:
    return Notifier(settings.notification_url, settings.notification_identifier, transport=transport)


def build_reconciler(settings: Settings, notifier: Notifier | None = None) -> Reconciler:
    return Reconciler(
        resolver=AddressResolver(),
        store=PolicyStore.from_settings(settings),
        notifier=notifier or build_notifier(settings),
    )


def _install_signal_handlers(stop: Event) -> None:
    def _handler(signum, _frame) -> None:
        logger.info("Received %s, shutting down", signal.Signals(signum).name)
        stop.set()

    signal.signal(signal.SIGINT, _handler)
    signal.signal(signal.SIGTERM, _handler)


def run(
    settings: Settings,
    stop: Event | None = None,
    context: ProcessContext | None = None,
    reconciler: Reconciler | None = None,
    health_server: HealthServer | None = None,
) -> int:
    """Run the updater until a termination signal (or `stop`) arrives.

    Returns the process exit code.
    """
    context = context or ProcessContext()
    notifier = reconciler.notifier if reconciler else build_notifier(settings)
    reconciler = reconciler or build_reconciler(settings, notifier)

    try:
        scheduler = CronScheduler(settings.cron, reconciler.run)
    except InvalidSchedule as e:
        logger.error("Error setting up cron job: %s", e)
        return 1

    if stop is None:
        stop = Event()
        _install_signal_handlers(stop)

    health_server = health_server or HealthServer(context, port=settings.health_port)
    health_server.start()

    if settings.test_notification and notifier.enabled:
        logger.info("Sending test notification...")
        if notifier.notify_safely(STARTED_MESSAGE):
            logger.info("Test notification sent successfully")

    # First run happens right away, not at the first scheduled tick.
    try:
        reconciler.run()
    except Exception:
        logger.exception("Initial IP check failed")

    scheduler.start()
    logger.info("Cloudflare IP Updater running on schedule: %s", settings.cron)

    stop.wait()

    scheduler.stop()
    notifier.notify_safely(STOPPED_MESSAGE)
    health_server.stop()
    logger.info("Cloudflare IP Updater stopped")
    return 0
