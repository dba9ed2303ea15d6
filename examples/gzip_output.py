#!/usr/bin/env python3
"""
Post-processing example - compresses a committed output file.

    gzip_output.py [--keep] <file>

Writes <file>.gz and removes <file> unless --keep is given.
"""

import argparse
import gzip
import shutil
import sys
from pathlib import Path


def main():
    parser = argparse.ArgumentParser(description="Compress an outmon output file")
    parser.add_argument("--keep", action="store_true", help="Keep the original file")
    parser.add_argument("file", type=Path)
    args = parser.parse_args()

    if not args.file.exists():
        print(f"Error: {args.file} not found", file=sys.stderr)
        sys.exit(1)

    target = args.file.with_name(args.file.name + ".gz")
    with open(args.file, "rb") as src, gzip.open(target, "wb") as dst:
        shutil.copyfileobj(src, dst)

    if not args.keep:
        args.file.unlink()


if __name__ == "__main__":
    main()
