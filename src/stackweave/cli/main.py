from __future__ import annotations

import argparse
import sys
from typing import Sequence

from stackweave.config import get_settings
from stackweave.logging import configure_logging

OUTPUT_CHOICES = ["text", "json", "yaml"]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="stackweave",
        description="Plan and instantiate infrastructure units from one configuration",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Log level (default from STACKWEAVE_LOG_LEVEL)",
    )
    subparsers = parser.add_subparsers(dest="command")

    plan_parser = subparsers.add_parser("plan", help="Show which units would be created, in order")
    plan_parser.add_argument("--config", dest="config_path", help="Path to config YAML")
    plan_parser.add_argument("--output", "-o", choices=OUTPUT_CHOICES, default="text", help="Output format")

    apply_parser = subparsers.add_parser("apply", help="Instantiate every enabled unit")
    apply_parser.add_argument("--config", dest="config_path", help="Path to config YAML")
    apply_parser.add_argument("--output", "-o", choices=OUTPUT_CHOICES, default="text", help="Output format")
    apply_parser.add_argument("--out-file", help="Write the run result to this file (.json or .yaml)")
    apply_parser.add_argument("--workers", type=int, default=None, help="Parallel workers for independent units")
    apply_parser.add_argument("--verbose", "-v", action="store_true", help="Show handles per unit")

    subparsers.add_parser("units", help="List the unit catalog")

    config_parser = subparsers.add_parser("config", help="Print the fully-defaulted configuration")
    config_parser.add_argument("--config", dest="config_path", help="Path to config YAML")
    config_parser.add_argument("--output", "-o", choices=["yaml", "json"], default="yaml", help="Output format")

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    settings = get_settings()
    configure_logging(args.log_level or settings.log_level, json_output=settings.log_json)

    if args.command == "plan":
        from stackweave.cli.plan import plan_command

        return plan_command(config_path=args.config_path, output_format=args.output)

    if args.command == "apply":
        from stackweave.cli.apply import apply_command

        return apply_command(
            config_path=args.config_path,
            output_format=args.output,
            out_file=args.out_file,
            workers=args.workers,
            verbose=args.verbose,
        )

    if args.command == "units":
        from stackweave.cli.units import list_units_command

        return list_units_command()

    if args.command == "config":
        from stackweave.cli.units import show_config_command

        return show_config_command(config_path=args.config_path, output_format=args.output)

    parser.print_help()
    return 1


if __name__ == "__main__":  # pragma: no cover - exercised via module entrypoint
    sys.exit(main())
