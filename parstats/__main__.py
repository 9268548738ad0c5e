"""CLI entry point: reads a data file, runs describe(), prints the summary."""

from __future__ import annotations

import argparse
import logging
import sys

from parstats.aggregate import AggregateDesign, describe
from parstats.core.compute.device import list_devices
from parstats.core.exceptions import ParStatsError


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='parstats',
        description="Descriptive statistics of one column of a data file, "
                    "computed with data-parallel kernels.",
    )
    parser.add_argument('path', nargs='?', help="whitespace-delimited text or .npy file")
    parser.add_argument(
        '-c', '--column', type=int, default=-1,
        help="column to aggregate, 0-based; negative counts from the end (default: last)",
    )
    parser.add_argument(
        '-b', '--backend', choices=('auto', 'cpu', 'gpu'), default='auto',
        help="compute backend (default: auto)",
    )
    parser.add_argument(
        '-g', '--max-group-size', type=int, default=None,
        help="override the device work-group limit",
    )
    parser.add_argument(
        '-l', '--list-devices', action='store_true',
        help="list available compute devices and exit",
    )
    parser.add_argument(
        '-v', '--verbose', action='count', default=0,
        help="log pipeline progress (-v) and every dispatch (-vv)",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    level = {0: logging.WARNING, 1: logging.INFO}.get(args.verbose, logging.DEBUG)
    logging.basicConfig(level=level, format='%(name)s: %(message)s')

    if args.list_devices:
        for device in list_devices():
            print(f"{device}  max_group_size={device.max_group_size}")
        return 0

    if args.path is None:
        parser.print_usage(sys.stderr)
        print("parstats: a data file is required", file=sys.stderr)
        return 1

    try:
        design = AggregateDesign.from_file(args.path, column=args.column)
        solution = describe(
            design, backend=args.backend, max_group_size=args.max_group_size,
        )
    except (ParStatsError, RuntimeError) as exc:
        print(f"parstats: {exc}", file=sys.stderr)
        return 1

    print(f"Running on {solution.backend_name}")
    print(solution.summary())
    return 0


if __name__ == '__main__':
    sys.exit(main())
