#!/usr/bin/env python3
from __future__ import annotations

import argparse
import json
import logging
import re
import sys
from pathlib import Path

from epubdoc.document import EpubDocument
from epubdoc.env import rewrite_targets_from_env
from epubdoc.errors import EpubError
from epubdoc.models import manifest_entry_to_dict, toc_node_to_dict


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Inspect an EPUB: metadata, spine, table of contents, rewritten chapters, extraction."
    )
    parser.add_argument("input", help="Input EPUB file path")
    parser.add_argument("--image-base-url", help="Base URL for rewritten image references")
    parser.add_argument("--link-base-url", help="Base URL for rewritten document links")
    parser.add_argument("--chapter", metavar="ID", help="Print the rewritten body of manifest item ID")
    parser.add_argument("--extract", metavar="DIR", help="Extract into DIR and rewrite XHTML documents")
    parser.add_argument("--media-type", help="Only extract items of this media type")
    parser.add_argument("--media-type-regex", help="Only extract items whose media type matches this pattern")
    parser.add_argument("--exclude", action="store_true", help="Invert the media type filter")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log progress to stderr")
    return parser.parse_args(argv)


def describe(document: EpubDocument) -> dict:
    return {
        "package": document.package_path,
        "metadata": document.get_metadata(),
        "spine": document.get_spine(),
        "manifest": [manifest_entry_to_dict(entry) for entry in document.get_manifest().values()],
        "toc": [toc_node_to_dict(node) for node in document.get_toc()],
    }


def main(argv: list[str]) -> int:
    args = parse_args(argv)
    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING, format="%(levelname)s %(name)s: %(message)s")

    input_path = Path(args.input)
    if not input_path.exists():
        print(f"Input file not found: {input_path}", file=sys.stderr)
        return 1

    defaults = rewrite_targets_from_env()
    document = EpubDocument(
        input_path,
        image_base_url=args.image_base_url or defaults.image_base_url,
        link_base_url=args.link_base_url or defaults.link_base_url,
    )
    try:
        document.load()
        if args.chapter:
            print(document.get_chapter(args.chapter))
        elif args.extract:
            media_filter = args.media_type
            if args.media_type_regex:
                media_filter = re.compile(args.media_type_regex)
            rewritten = document.extract(args.extract, media_filter, exclude=args.exclude)
            print(f"Extracted to: {args.extract} ({len(rewritten)} documents rewritten)")
        else:
            print(json.dumps(describe(document), ensure_ascii=False, indent=2))
    except EpubError as exc:
        print(f"{type(exc).__name__}: {exc}", file=sys.stderr)
        return 2
    return 0


def cli() -> int:
    return main(sys.argv[1:])


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
