import sys
import os
import asyncio
import argparse
from pathlib import Path

# Inject the audit-engine directory into sys.path
# This ensures all sub-packages (auditor, detection, diffing, history, ...) are resolvable.
sys.path.append(os.path.join(os.path.dirname(__file__), "audit-engine"))

from auditor import config
from auditor.logger import logger
from diffing.patch import diff_raw_html
from diffing.structural import structural_diff, wrap_diff_html
from history.factory import create_stores


def _read(path):
    return Path(path).read_text(encoding="utf-8", errors="ignore")


def run_cleanup(args):
    history_store, _ = create_stores()
    result = asyncio.run(history_store.cleanup(args.max_age_days, args.keep_per_resource))
    logger.info(f"[CLEANUP] Content changes: deleted {result.deleted}, kept {result.kept}")
    if result.failed_resources:
        logger.warning(f"[CLEANUP] Failed resources: {', '.join(result.failed_resources)}")
        return 1
    return 0


def run_visual_diff(args):
    result = structural_diff(_read(args.previous), _read(args.current), args.base_url)
    document = wrap_diff_html(result.merged_html, args.base_url, result.stylesheets)

    out_path = Path(args.out)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(document, encoding="utf-8")

    logger.info(
        f"[DIFF] Wrote {out_path} (additions={result.additions}, deletions={result.deletions})"
    )
    return 0


def run_patch(args):
    patch = diff_raw_html(_read(args.previous), _read(args.current))
    if patch is None:
        print("No differences (after stripping nav/footer/script/style).")
        return 0
    sys.stdout.write(patch)
    return 0


def run_serve(args):
    from api.app import create_app

    app = create_app()
    app.run(host=args.host, port=args.port)
    return 0


def build_parser():
    parser = argparse.ArgumentParser(description="Page change audit engine")
    parser.add_argument(
        "--mode",
        choices=["cleanup", "visual-diff", "patch", "serve"],
        default="cleanup",
        help="Job to run (default: cleanup)",
    )
    parser.add_argument("--max-age-days", type=int, default=config.RETENTION_MAX_AGE_DAYS)
    parser.add_argument("--keep-per-resource", type=int, default=config.RETENTION_KEEP_PER_RESOURCE)
    parser.add_argument("--previous", help="Previous HTML file (visual-diff / patch)")
    parser.add_argument("--current", help="Current HTML file (visual-diff / patch)")
    parser.add_argument("--base-url", default=None, help="Base URL for resolving relative assets")
    parser.add_argument("--out", default="diffs/visual_diff.html", help="Output file for visual-diff")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=5000)
    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.mode in ("visual-diff", "patch") and not (args.previous and args.current):
        parser.error(f"--mode={args.mode} requires --previous and --current")

    handlers = {
        "cleanup": run_cleanup,
        "visual-diff": run_visual_diff,
        "patch": run_patch,
        "serve": run_serve,
    }
    return handlers[args.mode](args)


if __name__ == "__main__":
    sys.exit(main())
