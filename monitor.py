#!/usr/bin/env python3
"""
System Monitor
Periodically collects local and remote (SSH) process and resource metrics
and prints them for inspection
"""

import argparse
import logging
import signal
import sys
import threading

import psutil

from collectors.local_collector import collect_local_stats
from collectors.remote_collector import CollectionReport, RemoteCollector, collect_targets
from config_loader import DEFAULT_CONFIG_PATH, ConfigError, MonitorConfig, load_config
from connectors.ssh_executor import OpenSSHExecutor
from rendering.terminal import RenderOptions, TerminalRenderer, render_json

logger = logging.getLogger(__name__)


class SystemMonitor:
    """Runs collection cycles over the configured hosts"""

    def __init__(self, config: MonitorConfig, collector: RemoteCollector = None,
                 renderer: TerminalRenderer = None, parallel: int = 1, as_json: bool = False,
                 local_collect=collect_local_stats):
        self.config = config
        self.collector = collector or RemoteCollector()
        self.renderer = renderer or TerminalRenderer()
        self.parallel = parallel
        self.as_json = as_json
        self.local_collect = local_collect

    def run_cycle(self) -> CollectionReport:
        """Collect from every host once and render the results"""
        report = CollectionReport()

        if self.config.local.enabled:
            try:
                report.results['local'] = self.local_collect(self.config.local.process_filters)
            except (OSError, psutil.Error) as e:
                logger.error(f"Error collecting local stats: {e}")
                report.errors['local'] = e

        remote = collect_targets(self.config.remote, self.collector, self.parallel)
        report.results.update(remote.results)
        report.errors.update(remote.errors)

        self._render(report)
        return report

    def _render(self, report: CollectionReport) -> None:
        if self.as_json:
            self.renderer.stream.write(render_json(report.results, report.errors) + '\n')
            return
        for key, metrics in report.results.items():
            self.renderer.render_metrics(metrics, key)
        for key, error in report.errors.items():
            self.renderer.render_error(key, error)

    def run(self, stop_event: threading.Event) -> None:
        """Run cycles every interval until stop_event is set"""
        logger.info(f"Starting system monitor: every {self.config.interval_text}")
        while not stop_event.is_set():
            self.run_cycle()
            if stop_event.wait(self.config.interval):
                break
        logger.info("Exiting system monitor")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='System Monitor - watch processes and resources on local and remote hosts',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Poll every host in the config file
  python3 monitor.py -c config.yaml

  # Single cycle, JSON output, 4 hosts at a time
  python3 monitor.py -c config.yaml --once --json --parallel 4
        """
    )
    parser.add_argument(
        '-c', '--config',
        default=DEFAULT_CONFIG_PATH,
        help=f'Path to YAML configuration file (default: {DEFAULT_CONFIG_PATH})'
    )
    parser.add_argument(
        '--once',
        action='store_true',
        help='Run a single collection cycle and exit'
    )
    parser.add_argument(
        '--json',
        action='store_true',
        help='Print results as JSON'
    )
    parser.add_argument(
        '--parallel',
        type=int,
        default=1,
        metavar='N',
        help='Number of remote hosts to collect from concurrently (default: 1)'
    )
    parser.add_argument(
        '--timeout',
        type=float,
        default=60.0,
        metavar='SECONDS',
        help='Time budget per remote host (default: 60)'
    )
    parser.add_argument(
        '--no-color',
        action='store_true',
        help='Disable ANSI colors'
    )
    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Enable verbose logging'
    )
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    try:
        config = load_config(args.config)
    except ConfigError as e:
        print(f"Failed to load config: {e}", file=sys.stderr)
        return 1

    monitor = SystemMonitor(
        config,
        collector=RemoteCollector(OpenSSHExecutor(), timeout=args.timeout),
        renderer=TerminalRenderer(RenderOptions(color=not args.no_color and sys.stdout.isatty())),
        parallel=max(1, args.parallel),
        as_json=args.json
    )

    if args.once:
        monitor.run_cycle()
        return 0

    stop_event = threading.Event()

    def _shutdown(sig, frame):
        logger.info(f"Received {signal.Signals(sig).name}, shutting down...")
        stop_event.set()

    signal.signal(signal.SIGINT, _shutdown)
    signal.signal(signal.SIGTERM, _shutdown)

    monitor.run(stop_event)
    return 0


if __name__ == '__main__':
    sys.exit(main())
