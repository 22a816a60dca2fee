#!/usr/bin/env python3
"""
Store consistency check.
Confirms the mirror file holds whole records, every metadata line parses,
and both stores hold the same number of records.
"""

import argparse
import sys
from pathlib import Path

# Add the parent directory to sys.path to import our modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from reviewsearch.core.config import get_data_dir, get_embed_dim
from reviewsearch.core.exceptions import ValidationError
from reviewsearch.core.meta_store import MetadataStore
from reviewsearch.vector.file_store import FileVectorIndex


def main(argv=None):
    """Verify the vector and metadata stores; exit 1 on any issue."""
    parser = argparse.ArgumentParser(description="Verify review search stores")
    parser.add_argument("--data-dir", default=None, help="Data directory (default: DATA_DIR)")
    parser.add_argument("--dim", type=int, default=None, help="Vector dimension (default: EMBED_DIM)")
    args = parser.parse_args(argv)

    data_dir = Path(args.data_dir) if args.data_dir else get_data_dir()
    dim = args.dim if args.dim is not None else get_embed_dim()

    print(f"Verifying stores in {data_dir.resolve()} (dim={dim})...")
    issues = 0

    vector_index = FileVectorIndex.open(data_dir, dim)
    try:
        ok, details = vector_index.verify()
        if ok:
            print(f"✓ Vector file holds {details['records']} records")
        else:
            print(f"✗ Vector file has {details['trailing_bytes']} trailing bytes after {details['records']} records")
            issues += 1

        meta_store = MetadataStore.open(data_dir)
        bad_lines = 0
        for record_id in range(meta_store.count()):
            try:
                meta_store.read(record_id)
            except ValidationError as e:
                print(f"✗ Metadata line {record_id}: {e}")
                bad_lines += 1
        if bad_lines:
            issues += bad_lines
        else:
            print(f"✓ Metadata file holds {meta_store.count()} valid reviews")

        if details["records"] != meta_store.count():
            print(f"✗ Record counts differ: vectors={details['records']} metadata={meta_store.count()}")
            issues += 1
        else:
            print("✓ Record counts match")
    finally:
        vector_index.close()

    if issues:
        print(f"Found {issues} issue(s)")
        sys.exit(1)
    print("Stores are consistent")


if __name__ == "__main__":
    main()
