#!/usr/bin/env python3
"""
dxrules - Rule Publishing Script
Compiles a CSV export of the authoring sheet and publishes the rule set
"""

import argparse
import logging
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from dxrules.config import settings
from dxrules.exceptions import CompileError
from dxrules.services.rule_publisher import (
    FileRulePublisher, RedisRulePublisher, publish_rules, read_csv_rows
)

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Compile and publish diagnosis rules")
    parser.add_argument("--csv", required=True, help="CSV export of the rules sheet (header row first)")
    parser.add_argument("--namespace", default=settings.rules_namespace, help="Rules namespace")
    parser.add_argument("--target", choices=["file", "redis"], default="file", help="Where to publish")
    parser.add_argument("--out-dir", default=settings.rules_dir, help="Artifact directory for --target file")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    """Compile and publish; nothing is written when compilation fails"""
    args = parse_args(argv)

    print("=" * 60)
    print(f"dxrules - Publishing namespace '{args.namespace}'")
    print("=" * 60)

    publisher = FileRulePublisher(args.out_dir) if args.target == "file" else RedisRulePublisher()

    try:
        rows = read_csv_rows(args.csv)
    except OSError as e:
        print(f"\n✗ Cannot read {args.csv}: {e}")
        logger.error(f"Failed to read rule sheet export {args.csv}: {e}")
        return 1

    try:
        result = publish_rules(rows, args.namespace, publisher)
    except CompileError as e:
        print(f"\n✗ Compile failed, previous artifact left in place: {e.message}")
        logger.error(f"Compile error details: {e.details}")
        return 1

    print(f"\n✓ Published {result.rule_count} rules")
    print(f"  current:   {result.current_location}")
    print(f"  versioned: {result.versioned_location}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
