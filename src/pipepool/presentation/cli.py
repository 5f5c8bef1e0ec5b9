"""CLI driver: push synthetic or file payloads through a process pool."""

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from pipepool.application.pool import ProcessPool
from pipepool.domain.exceptions import ConfigurationError, PoolError
from pipepool.infrastructure.config import ConfigLoader
from pipepool.shared.logging import LoggerAdapter, get_logger, setup_logger
from pipepool.shared.metrics import MetricsCollector

DEFAULT_SIZES = [65536, 65537]


def build_payloads(sizes: List[int], input_files: List[Path]) -> List[bytes]:
    """Payloads of repeated b'a' for each size, then the contents of each file."""
    payloads = [b'a' * size for size in sizes]
    payloads.extend(path.read_bytes() for path in input_files)
    return payloads


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='pipepool',
        description='Run one command per payload, feeding stdin and collecting stdout/stderr'
    )
    parser.add_argument('command', nargs=argparse.REMAINDER,
                        help='Command and arguments (default: from config, else "tee pipepool.out")')
    parser.add_argument('--config', type=Path, help='Config YAML file')
    parser.add_argument('--max-procs', '-j', type=int, help='Maximum concurrent children')
    parser.add_argument('--size', '-s', type=int, action='append', default=None,
                        help='Synthetic payload size in bytes (repeatable)')
    parser.add_argument('--input-file', '-f', type=Path, action='append', default=[],
                        help='Read a payload from this file (repeatable)')
    parser.add_argument('--metrics', action='store_true', help='Print a metrics summary')
    parser.add_argument('--verbose', '-v', action='store_true', help='Verbose')
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point. Returns the process exit code."""
    parser = build_parser()
    args = parser.parse_args(argv)

    command = list(args.command)
    if command and command[0] == '--':
        command = command[1:]

    setup_logger('pipepool', level='DEBUG' if args.verbose else 'INFO')
    logger = get_logger('pipepool.cli')

    try:
        config = ConfigLoader(config_path=args.config).load(overrides={
            'max_procs': args.max_procs,
            'command': command or None,
            'log_level': 'DEBUG' if args.verbose else None,
        })
    except ConfigurationError as e:
        logger.error(f"Invalid configuration: {e}")
        return 2

    setup_logger('pipepool', level=config.log_level, log_file=config.log_file)

    command = config.command or ['tee', 'pipepool.out']
    sizes = args.size if args.size is not None else ([] if args.input_file else DEFAULT_SIZES)

    try:
        payloads = build_payloads(sizes, args.input_file)
    except OSError as e:
        logger.error(f"Cannot read input: {e}")
        return 2

    metrics = MetricsCollector()
    pool = ProcessPool(config, logger=LoggerAdapter(get_logger('pipepool.pool')), metrics=metrics)

    try:
        result = pool.run_batch(payloads, *command)
    except PoolError as e:
        logger.error(f"Run aborted: {e}")
        return 2

    for index, item in enumerate(result.results()):
        print(f"{index}\t{item.status}\tin={len(payloads[index])}\tout={len(item.stdout)}\terr={len(item.stderr)}")

    if args.metrics:
        print(metrics.format_summary())

    return 0 if result.all_succeeded else 1


if __name__ == "__main__":
    sys.exit(main())
