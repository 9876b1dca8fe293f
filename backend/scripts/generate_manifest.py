#!/usr/bin/env python3
"""
Write manifest.json for the bundled report directory.

Usage:
    python scripts/generate_manifest.py [--dir audited_reports]
"""
import argparse
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from config import get_settings
from repositories.snapshot_audit_repository import generate_manifest


def main():
    parser = argparse.ArgumentParser(description='Generate manifest.json for audit reports')
    parser.add_argument('--dir', default=None, help='Report directory (default: settings.snapshot_dir)')
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
    directory = Path(args.dir or get_settings().snapshot_dir)
    try:
        path = generate_manifest(directory)
    except FileNotFoundError as e:
        logging.error(f"❌ {e}")
        sys.exit(1)
    print(f"✅ Manifest written to {path}")


if __name__ == '__main__':
    main()
