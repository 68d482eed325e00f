#!/usr/bin/env python3
"""
Regulatory Change Monitor - Main Entry Point

Watches regulatory web pages for content changes and records an LLM-assisted
summary of each change for human review.

Usage:
    python main.py [command] [options]

Commands:
    init-db       Initialize the database
    load-sources  Load monitored sources from config/sources.yaml
    monitor       Run one monitoring pass and print the run report
    dashboard     Start the API (cron trigger + review endpoints)
    scheduler     Run the monitor daily at MONITOR_RUN_TIME

Examples:
    python main.py init-db
    python main.py load-sources --config config/sources.yaml
    python main.py monitor
    python main.py dashboard --port 8000
"""

import argparse
import asyncio
import json
import logging
import signal
import sys
import time
from pathlib import Path
from typing import Optional

from regwatch.database.connection import create_session_factory, init_db, session_scope
from regwatch.database.models import Source
from regwatch.monitors.regulatory_monitor import build_monitor
from regwatch.scheduler.monitoring_scheduler import MonitoringScheduler
from regwatch.utils.config_loader import MonitorSettings, get_source_definitions, load_sources_config


def setup_logging(log_level: str = "INFO") -> None:
    """Set up logging configuration."""
    log_format = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

    logs_dir = Path("logs")
    logs_dir.mkdir(exist_ok=True)

    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format=log_format,
        handlers=[
            logging.FileHandler(logs_dir / 'regulatory_monitor.log'),
            logging.StreamHandler(sys.stderr)
        ]
    )


logger = logging.getLogger(__name__)


class RegulatoryMonitorApp:
    """Command-line application wrapping the monitoring pipeline."""

    def __init__(self, settings: MonitorSettings):
        self.settings = settings
        self.scheduler: Optional[MonitoringScheduler] = None
        self._session_factory = None

    @property
    def session_factory(self):
        if self._session_factory is None:
            self._session_factory = create_session_factory(init_db(self.settings.database_url))
        return self._session_factory

    def setup_signal_handlers(self) -> None:
        """Set up signal handlers for graceful shutdown."""
        def signal_handler(signum, frame):
            logger.info(f"Received signal {signum}, shutting down gracefully...")
            self.shutdown()
            sys.exit(0)

        signal.signal(signal.SIGINT, signal_handler)
        signal.signal(signal.SIGTERM, signal_handler)

    def shutdown(self) -> None:
        """Gracefully shutdown the application."""
        if self.scheduler:
            self.scheduler.stop()
        logger.info("Shutdown complete")

    def init_database(self) -> bool:
        """Initialize database tables."""
        try:
            logger.info("Initializing database...")
            self._session_factory = create_session_factory(init_db(self.settings.database_url))
            return True
        except Exception as e:
            logger.error(f"Failed to initialize database: {e}", exc_info=True)
            return False

    def load_sources(self, config_path: Optional[str] = None) -> bool:
        """Load source definitions from configuration into the database."""
        try:
            definitions = get_source_definitions(load_sources_config(config_path))

            with session_scope(self.session_factory) as db:
                for definition in definitions:
                    existing = db.query(Source).filter(Source.url == definition['url']).first()
                    if existing:
                        existing.name = definition['name']
                        existing.source_type = definition['source_type']
                        existing.is_active = definition['is_active']
                        logger.info(f"Source already exists, updated: {definition['name']}")
                    else:
                        db.add(Source(**definition))
                        logger.info(f"Created source: {definition['name']}")

            logger.info(f"Loaded {len(definitions)} sources")
            return True

        except Exception as e:
            logger.error(f"Failed to load sources: {e}", exc_info=True)
            return False

    def run_monitoring(self) -> bool:
        """Run one monitoring pass and print the report as JSON."""
        monitor = build_monitor(self.settings, self.session_factory)
        report = asyncio.run(monitor.run())
        print(json.dumps(report.to_dict(), indent=2))
        return report.success

    def start_dashboard(self, host: str, port: int) -> bool:
        """Start the API server."""
        try:
            import uvicorn
            from regwatch.api.main import create_app

            app = create_app(self.settings, self.session_factory)
            logger.info(f"Starting API on http://{host}:{port}")
            uvicorn.run(app, host=host, port=port)
            return True

        except Exception as e:
            logger.error(f"Failed to start dashboard: {e}", exc_info=True)
            return False

    def start_monitoring_scheduler(self) -> bool:
        """Start the daily scheduler and block."""
        monitor = build_monitor(self.settings, self.session_factory)
        self.scheduler = MonitoringScheduler(monitor, run_time=self.settings.run_time)
        self.scheduler.start()

        try:
            while self.scheduler.running:
                time.sleep(60)
                status = self.scheduler.get_schedule_status()
                logger.debug(f"Scheduler status: Running={status['running']}, Next={status['next_run']}")
            return True
        except KeyboardInterrupt:
            logger.info("Shutting down scheduler...")
            self.scheduler.stop()
            return True


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Regulatory Change Monitor",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__
    )

    parser.add_argument(
        'command',
        choices=['init-db', 'load-sources', 'monitor', 'dashboard', 'scheduler'],
        help='Command to execute'
    )
    parser.add_argument(
        '--log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        default=None,
        help='Set logging level (defaults to LOG_LEVEL)'
    )
    parser.add_argument('--config', default=None, help='Path to sources YAML (load-sources)')
    parser.add_argument('--host', default='0.0.0.0', help='Bind host (dashboard)')
    parser.add_argument('--port', type=int, default=8000, help='Bind port (dashboard)')

    args = parser.parse_args()

    try:
        settings = MonitorSettings.from_env()
    except ValueError as e:
        setup_logging(args.log_level or 'INFO')
        logger.error(f"Invalid configuration: {e}")
        sys.exit(1)

    setup_logging(args.log_level or settings.log_level)
    logger.info(f"Regulatory Change Monitor - {args.command.upper()}")

    app = RegulatoryMonitorApp(settings)
    app.setup_signal_handlers()

    success = False

    try:
        if args.command == 'init-db':
            success = app.init_database()

        elif args.command == 'load-sources':
            success = app.load_sources(args.config)

        elif args.command == 'monitor':
            success = app.run_monitoring()

        elif args.command == 'dashboard':
            success = app.start_dashboard(args.host, args.port)

        elif args.command == 'scheduler':
            success = app.start_monitoring_scheduler()

    except KeyboardInterrupt:
        logger.info("Received interrupt signal, shutting down...")
        app.shutdown()
        sys.exit(0)
    except Exception as e:
        logger.error(f"Unexpected error: {e}", exc_info=True)
        app.shutdown()
        sys.exit(1)

    if success:
        logger.info(f"Command '{args.command}' completed successfully!")
        sys.exit(0)
    else:
        logger.error(f"Command '{args.command}' failed!")
        sys.exit(1)


if __name__ == "__main__":
    main()
