"""Grocery fulfillment maintenance CLI.

Runs the periodic passes an operator (or cron) triggers against the domain.

Usage:
    python src/manage.py dispatch-sweep [--vendor VENDOR_ID]
    python src/manage.py expire-substitutions [--as-of 2026-01-01T10:00:00]
"""

import argparse
import sys
from datetime import datetime


def dispatch_sweep(vendor_id=None):
    """Assign waiting orders and replace workers who went offline."""
    from grocery.dispatch.sweep import RunDispatchSweep
    from grocery.domain import grocery

    grocery.init()
    with grocery.domain_context():
        summary = grocery.process(RunDispatchSweep(vendor_id=vendor_id), asynchronous=False)

    for key, value in summary.items():
        print(f"  {key}: {value}")
    print("Done.")
    return summary


def expire_substitutions(as_of=None):
    """Auto-reject every substitution proposal past its deadline."""
    from grocery.domain import grocery
    from grocery.substitution.expiry import ExpireSubstitutions

    grocery.init()
    with grocery.domain_context():
        expired = grocery.process(ExpireSubstitutions(as_of=as_of), asynchronous=False)

    print(f"  expired: {expired}")
    print("Done.")
    return expired


def main(argv=None):
    parser = argparse.ArgumentParser(description="Grocery fulfillment maintenance")
    subparsers = parser.add_subparsers(dest="command", required=True)

    sweep_parser = subparsers.add_parser("dispatch-sweep", help="Run one dispatch pass")
    sweep_parser.add_argument("--vendor", help="Restrict the pass to one store")

    expiry_parser = subparsers.add_parser("expire-substitutions", help="Auto-reject overdue proposals")
    expiry_parser.add_argument(
        "--as-of",
        type=datetime.fromisoformat,
        help="Reference time in ISO format (default: now)",
    )

    args = parser.parse_args(argv)

    if args.command == "dispatch-sweep":
        dispatch_sweep(args.vendor)
    elif args.command == "expire-substitutions":
        expire_substitutions(args.as_of)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
