"""Command-line interface for seatplan."""

import argparse
import logging
import sys
from pathlib import Path

import yaml

from seatplan.models import OptimizationOptions
from seatplan.optimizer import DEFAULT_MAX_ITERATIONS, optimize_seating
from seatplan.output import format_assignments_csv, format_guest_breakdown, format_results
from seatplan.parser import (
    create_event_template,
    mirror_relationships,
    parse_event_yaml,
    parse_weights_yaml,
)
from seatplan.weights import DEFAULT_WEIGHTS, PRESETS, get_preset


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="seatplan",
        description="Propose table seating for an event from relationships and constraints.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""\
Examples:
  seatplan --output-template event.yaml
  seatplan event.yaml
  seatplan event.yaml --preset wedding --breakdown
  seatplan event.yaml --weights weights.yaml --tables t1 t2 --csv seating.csv
""",
    )
    parser.add_argument(
        "event_yaml",
        type=Path,
        nargs="?",
        help="Path to the event YAML file with guests, tables and constraints",
    )
    parser.add_argument(
        "--weights",
        type=Path,
        help="Path to a weights YAML file, applied on top of --preset if given",
    )
    parser.add_argument(
        "--preset",
        choices=sorted(PRESETS),
        help="Use a named weight preset instead of the defaults",
    )
    parser.add_argument(
        "--max-iterations",
        type=int,
        default=DEFAULT_MAX_ITERATIONS,
        help=f"Maximum local-search passes (default: {DEFAULT_MAX_ITERATIONS})",
    )
    parser.add_argument(
        "--time-limit",
        type=float,
        default=None,
        help="Stop refining after this many seconds",
    )
    parser.add_argument(
        "--guests",
        nargs="+",
        metavar="GUEST_ID",
        help="Only seat these guests",
    )
    parser.add_argument(
        "--tables",
        nargs="+",
        metavar="TABLE_ID",
        help="Only use these tables",
    )
    parser.add_argument(
        "--preserve",
        action="store_true",
        help="Keep guests who already have a table where they are",
    )
    parser.add_argument(
        "--mirror-relationships",
        action="store_true",
        help="Copy every relationship in the reverse direction before optimizing",
    )
    parser.add_argument(
        "--breakdown",
        action="store_true",
        help="Show the score breakdown for every guest",
    )
    parser.add_argument(
        "--csv",
        type=Path,
        help="Also write the proposed seating to this CSV file",
    )
    parser.add_argument(
        "--output-template",
        type=Path,
        help="Write an example event file to this path and exit",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: WARNING)",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point for seatplan CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.output_template:
        create_event_template(args.output_template)
        print(f"Created event template at: {args.output_template}")
        print("Edit this file to describe your guests and tables, then run again.")
        return 0

    if args.event_yaml is None:
        parser.error("the event YAML file is required unless --output-template is given")

    if not args.event_yaml.exists():
        print(f"Error: Event file not found: {args.event_yaml}", file=sys.stderr)
        return 1

    try:
        event = parse_event_yaml(args.event_yaml)
    except (ValueError, yaml.YAMLError) as e:
        print(f"Error parsing event file: {e}", file=sys.stderr)
        return 1

    base = get_preset(args.preset) if args.preset else None
    weights = base if base is not None else DEFAULT_WEIGHTS
    if args.weights:
        if not args.weights.exists():
            print(f"Error: Weights file not found: {args.weights}", file=sys.stderr)
            return 1
        try:
            weights = parse_weights_yaml(args.weights, base=base)
        except (ValueError, yaml.YAMLError) as e:
            print(f"Error parsing weights file: {e}", file=sys.stderr)
            return 1

    guests = event.guests
    if args.mirror_relationships:
        guests = mirror_relationships(guests)

    print(
        f"Loaded {len(guests)} guests, {len(event.tables)} tables "
        f"and {len(event.constraints)} constraints for {event.name}"
    )

    result = optimize_seating(
        guests=guests,
        tables=event.tables,
        constraints=event.constraints,
        weights=weights,
        options=OptimizationOptions(
            selected_guest_ids=args.guests,
            selected_table_ids=args.tables,
            max_iterations=args.max_iterations,
            preserve_current_assignments=args.preserve,
            time_limit=args.time_limit,
        ),
    )

    print()
    print(format_results(result, guests, event.tables))
    if args.breakdown:
        print()
        print(format_guest_breakdown(result, guests))

    if args.csv:
        csv_text = format_assignments_csv(result, guests, event.tables)
        args.csv.write_text(csv_text + "\n", encoding="utf-8")
        print(f"\nWrote seating to {args.csv}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
