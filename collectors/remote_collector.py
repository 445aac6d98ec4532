"""
Remote Collector
Collects filtered process info and system stats from remote hosts over ssh
"""

import logging
import time
from collections import Counter
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from collectors.commands import build_ps_command, build_system_stats_command
from collectors.models import RemoteMetrics, RemoteTarget
from collectors.parsers import ParseError, decode_process_table, parse_system_stats_output
from connectors.ssh_executor import CommandExecutor, OpenSSHExecutor, TransportError
from validation.validators import CommandRejected, ValidationError, validate_target

logger = logging.getLogger(__name__)


class CollectionError(RuntimeError):
    """Collection from one target failed; `cause` holds the underlying error"""

    def __init__(self, host: str, cause: Exception):
        super().__init__(f"{host}: {cause}")
        self.host = host
        self.cause = cause


@dataclass
class CollectionReport:
    """Outcome of one collection pass over several targets"""
    results: Dict[str, RemoteMetrics] = field(default_factory=dict)
    errors: Dict[str, CollectionError] = field(default_factory=dict)

    @property
    def successful(self) -> int:
        return len(self.results)

    @property
    def failed(self) -> int:
        return len(self.errors)


class RemoteCollector:
    """Runs the ps and system stats probes against one target at a time.

    Holds no per-target state, so a single instance can serve several
    threads. `timeout` bounds the whole collection of one target.
    """

    def __init__(self, executor: CommandExecutor = None, timeout: float = None):
        self.executor = executor or OpenSSHExecutor()
        self.timeout = timeout

    def collect(self, target: RemoteTarget) -> RemoteMetrics:
        """Collect metrics from a single target.

        Raises CollectionError tagged with the target host on any failure.
        """
        deadline = time.monotonic() + self.timeout if self.timeout else None
        try:
            validate_target(target)

            ps_command = build_ps_command(target.user)
            output = self._run(target, ps_command, deadline)
            processes, skipped = decode_process_table(output, target.process_filters)

            stats_output = self._run(target, build_system_stats_command(), deadline)
            system_stats = parse_system_stats_output(stats_output)
        except (ValidationError, CommandRejected, TransportError, ParseError) as e:
            logger.warning(f"Collection from {target.label} failed: {e}")
            raise CollectionError(target.host, e) from e
        except Exception as e:
            logger.exception(f"Unexpected error collecting from {target.label}")
            raise CollectionError(target.host, e) from e

        logger.info(f"Collected {len(processes)} processes from {target.host}")
        return RemoteMetrics(
            host=target.host,
            timestamp=datetime.now(),
            processes=processes,
            system_stats=system_stats,
            skipped_lines=skipped
        )

    def _run(self, target: RemoteTarget, command: str, deadline: Optional[float]) -> str:
        timeout = None
        if deadline is not None:
            timeout = deadline - time.monotonic()
            if timeout <= 0:
                raise TransportError(f"deadline exceeded before running command on {target.host}")
        return self.executor.execute(
            target.user,
            target.host,
            target.port,
            target.ssh_key_path,
            target.proxy_jump,
            command,
            timeout=timeout
        )


def collect_remote_stats(target: RemoteTarget, executor: CommandExecutor = None,
                         timeout: float = None) -> RemoteMetrics:
    """Collect process info and system stats from a remote server"""
    return RemoteCollector(executor, timeout).collect(target)


def target_keys(targets: List[RemoteTarget]) -> List[str]:
    """Report keys for targets: user@host:port, with #N appended to repeats"""
    keys = []
    seen = Counter()
    for target in targets:
        seen[target.label] += 1
        count = seen[target.label]
        keys.append(target.label if count == 1 else f"{target.label}#{count}")
    return keys


def collect_targets(targets: Iterable[RemoteTarget], collector: RemoteCollector = None,
                    parallel: int = 1) -> CollectionReport:
    """Collect from every target; a failing target never stops the others.

    Results and errors are keyed by `target_keys` and kept in target order.
    """
    collector = collector or RemoteCollector()
    targets = list(targets)
    keys = target_keys(targets)
    outcomes = {}

    if parallel > 1 and len(targets) > 1:
        with ThreadPoolExecutor(max_workers=parallel) as pool:
            futures = {pool.submit(collector.collect, target): key for key, target in zip(keys, targets)}
            for future in as_completed(futures):
                key = futures[future]
                try:
                    outcomes[key] = future.result()
                except CollectionError as e:
                    outcomes[key] = e
    else:
        for key, target in zip(keys, targets):
            try:
                outcomes[key] = collector.collect(target)
            except CollectionError as e:
                outcomes[key] = e

    report = CollectionReport()
    for key in keys:
        outcome = outcomes[key]
        if isinstance(outcome, CollectionError):
            report.errors[key] = outcome
        else:
            report.results[key] = outcome

    logger.info(f"Remote collection: {report.successful} succeeded, {report.failed} failed")
    return report
