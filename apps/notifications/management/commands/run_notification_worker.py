from __future__ import annotations

import signal

from django.core.management.base import BaseCommand  # type: ignore

from apps.notifications.conf import NotificationSettings
from apps.notifications.poller import build_poller


class Command(BaseCommand):
    help = "Запускает обработчик очереди уведомлений"

    def add_arguments(self, parser):  # type: ignore
        parser.add_argument("--once", action="store_true", help="Run a single tick and exit")
        parser.add_argument("--interval", type=float, default=None, help="Seconds between ticks")
        parser.add_argument("--batch-size", type=int, default=None, help="Jobs claimed per tick")

    def handle(self, *args, **options):  # type: ignore
        config = NotificationSettings.from_django()
        poller = build_poller(config, interval=options["interval"], batch_size=options["batch_size"])

        def _shutdown(signum, frame):  # type: ignore
            self.stdout.write(f"Received signal {signum}, stopping after the current tick")
            poller.stop()

        signal.signal(signal.SIGINT, _shutdown)
        signal.signal(signal.SIGTERM, _shutdown)

        self.stdout.write(
            f"Notification worker started (interval={poller.interval}s, batch={poller.batch_size})"
        )
        poller.run(once=options["once"])
        self.stdout.write(self.style.SUCCESS("Notification worker stopped"))
