import argparse
import json

from bill_digest.app.run import run_once
from bill_digest.config.log import configure_logging
from bill_digest.config.settings import load_settings


def main() -> None:
    parser = argparse.ArgumentParser(description="Collect this month's bills and send the summary mail.")
    parser.add_argument("--dry-run", action="store_true", help="Compose and log the summary without sending it.")
    parser.add_argument("--verbose", action="store_true", help="Print progress lines.")
    args = parser.parse_args()

    settings = load_settings(dry_run=True if args.dry_run else None)
    configure_logging(settings.log_level)

    summary = run_once(settings=settings, verbose=args.verbose)
    print(json.dumps(summary, indent=2))


if __name__ == "__main__":
    main()
