#!/usr/bin/env python3
"""Build a content directory into a static site with optimized images.

Every html page under --input-dir is copied to --output-dir with its <img>
elements rewritten to generated <picture>/<img> markup; other non-image files
are copied as-is.
"""
import argparse
import logging
from pathlib import Path

from picture_rewriter.errors import PictureRewriterError
from picture_rewriter.site import build_site


def main():
    ap = argparse.ArgumentParser()
    ap.add_argument('--input-dir', default='src', help='Content directory')
    ap.add_argument('--output-dir', default='_site', help='Directory to write the static site')
    ap.add_argument('--url-path', default=None, help='Write all generated images under this URL path')
    ap.add_argument('--widths', default=None, help='Comma-separated widths, e.g. 320,640,auto')
    ap.add_argument('--formats', default=None, help='Comma-separated formats, e.g. webp,jpeg')
    args = ap.parse_args()

    logging.basicConfig(level=logging.INFO, format='%(levelname)s %(name)s: %(message)s')

    input_dir = Path(args.input_dir)
    if not input_dir.exists():
        print(f"Input directory not found: {input_dir}")
        return 1

    options = {k: v for k, v in (('url_path', args.url_path), ('widths', args.widths), ('formats', args.formats)) if v}
    try:
        written = build_site(input_dir, Path(args.output_dir), **options)
    except PictureRewriterError as e:
        print(f"Build failed: {e}")
        return 1
    print(f"Wrote {len(written)} page(s) to {args.output_dir}")
    return 0


if __name__ == '__main__':
    raise SystemExit(main())
