"""
CLI entry point for gh-org-metrics. Wires the pipeline: periods -> fetch -> accumulate -> reduce -> report
"""

import argparse
import logging
import os
import sys
import webbrowser
from datetime import datetime, timezone

from ingest.github import GitHubClient
from ingest.retry import configure_retry, RateLimitPolicy
from pipeline import run_report, ReportRun, DEFAULT_MAX_WORKERS
from report.renderer import render, render_html
from report.workbook import write_workbook
from report.mailer import send_report
from scoring.utils import load_weights, load_preset, list_presets, load_identity_policy, IDENTITY_EXACT, IDENTITY_LOWER

EXTENSIONS = {"html": "html", "md": "md", "csv": "csv", "json": "json", "text": "txt"}


def _open_file_in_browser(path: str):
    """Open a file URL in the system default web browser."""
    webbrowser.open("file://" + os.path.abspath(path))


def _write_report_file(path_base: str, ext: str, content: str, open_html: bool = False) -> str:
    """Write the rendered content to a file and optionally open HTML in the browser."""
    out_path = path_base if path_base.lower().endswith(f".{ext}") else f"{path_base}.{ext}"
    out_dir = os.path.dirname(out_path)
    if out_dir:
        os.makedirs(out_dir, exist_ok=True)
    # newline='' is safe for CSV on Windows and harmless for other formats
    with open(out_path, 'w', encoding='utf-8', newline='') as fh:
        fh.write(content)
    print(f"Wrote report to {out_path}")
    if open_html:
        try:
            _open_file_in_browser(out_path)
        except webbrowser.Error:
            print('Failed to open browser automatically; file saved at', out_path)
    return out_path


def write_output(fmt: str, rendered: str, args):
    """Write output to a file, or print it when the format is plain text and no file was requested."""
    if fmt == "text" and not args.out_file.strip():
        print(rendered)
        return None
    ext = EXTENSIONS.get(fmt, "txt")
    base = args.out_file.strip() or f"gh_metrics_{args.org}_{datetime.now(timezone.utc).strftime('%Y%m%dT%H%M%SZ')}"
    return _write_report_file(base, ext, rendered, open_html=(args.open and fmt == "html"))


def _resolve_token(args, parser):
    """Resolve the GitHub token from CLI args or the environment; parser.error() if missing."""
    token = args.github_token or os.getenv('GITHUB_TOKEN')
    if not token:
        parser.error('Missing required token: github_token (CLI flag --github-token or env GITHUB_TOKEN)')
    args.github_token = token


def _resolve_scoring(args, parser):
    """Return (weights, identity_policy) from --weights/--preset/--identity-policy."""
    path = args.weights or None
    try:
        weights = load_preset(args.preset, path) if args.preset else load_weights(path)
        identity_policy = args.identity_policy or load_identity_policy(path)
    except (OSError, ValueError) as ex:
        parser.error(str(ex))
    return weights, identity_policy


def build_client(args) -> GitHubClient:
    policy = RateLimitPolicy()
    return GitHubClient(args.github_token, base_url=args.api_url or None, policy=policy)


def run_pipeline(args, weights, identity_policy, client=None) -> ReportRun:
    client = client or build_client(args)
    return run_report(
        client,
        args.org,
        repositories=args.repo or None,
        max_workers=args.max_workers,
        fail_fast=args.fail_fast,
        weights=weights,
        identity_policy=identity_policy,
        timeout=args.timeout,
    )


def deliver(run: ReportRun, args):
    """Write the requested outputs for a finished run."""
    fmt = (args.output or "html").lower()
    write_output(fmt, render(run, fmt=fmt), args)
    if args.workbook:
        path = write_workbook(run, args.workbook)
        print(f"Wrote workbook to {path}")
    if args.email_to:
        subject = args.subject or f"GitHub Repositories Report: {args.org}"
        send_report(subject, render_html(run, title=subject), args.email_to)
        print(f"Sent report to {', '.join(args.email_to)}")


def parse_max_retries(value: str):
    """Parse a retry cap: a non-negative int, or "none" for no cap."""
    if value.strip().lower() in ("none", "unbounded"):
        return None
    retries = int(value)
    if retries < 0:
        raise ValueError("max rate-limit retries must be >= 0 or 'none'")
    return retries


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Per-contributor GitHub activity report for an organization")
    parser.add_argument("--org", type=str, default=os.getenv("GITHUB_ORG"), help="GitHub organization (or env GITHUB_ORG)")
    parser.add_argument("--github-token", type=str, help="GitHub token (or env GITHUB_TOKEN)")
    parser.add_argument("--api-url", type=str, default="", help="GitHub API base URL (for GitHub Enterprise)")
    parser.add_argument("--repo", action="append", default=[], help="Only process this repository (repeatable); default is every org repository")
    parser.add_argument("--output", type=str, choices=sorted(EXTENSIONS), default="html", help="Output format")
    parser.add_argument("--out-file", type=str, default="", help="Output file path. If omitted a default name will be used")
    parser.add_argument("--open", action="store_true", help="Open the generated HTML report in the default browser")
    parser.add_argument("--workbook", type=str, default="", help="Also write an .xlsx workbook to this path")
    parser.add_argument("--email-to", action="append", default=[], help="Email the HTML report to this address (repeatable); SMTP settings come from EMAIL_* env vars")
    parser.add_argument("--subject", type=str, default="", help="Email subject")
    parser.add_argument("--weights", type=str, default="", help="Path to weights YAML (default: config/weights.yaml)")
    parser.add_argument("--preset", type=str, default="", help="Named weights preset from the weights YAML")
    parser.add_argument("--list-presets", action="store_true", help="Print the presets defined in the weights YAML and exit")
    parser.add_argument("--identity-policy", type=str, choices=[IDENTITY_EXACT, IDENTITY_LOWER], default=None, help="How contributor logins are matched")
    parser.add_argument("--max-workers", type=int, default=int(os.getenv("GHMETRICS_MAX_WORKERS", str(DEFAULT_MAX_WORKERS))), help="Concurrent repository/period fetches")
    parser.add_argument("--timeout", type=float, default=None, help="Cancel the run after this many seconds; unfinished repositories are excluded")
    # rate-limit knobs: optional CLI overrides of GHMETRICS_RATE_LIMIT_COOLDOWN / GHMETRICS_MAX_RATE_LIMIT_RETRIES
    parser.add_argument("--cooldown", type=float, default=None, help="Seconds to wait after a rate-limit response")
    parser.add_argument("--max-rate-limit-retries", type=str, default=None, help="Cooldowns allowed per page, or 'none' for no cap")
    parser.add_argument("--fail-fast", action="store_true", help="Abort on the first repository failure instead of excluding it")
    parser.add_argument("--verbose", action="store_true", help="Debug logging")
    return parser


def main(argv=None, client=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    # CLI flags take precedence over environment variables
    if args.max_rate_limit_retries is None:
        configure_retry(cooldown_seconds=args.cooldown)
    else:
        try:
            max_retries = parse_max_retries(args.max_rate_limit_retries)
        except ValueError as ex:
            parser.error(f"--max-rate-limit-retries: {ex}")
        configure_retry(cooldown_seconds=args.cooldown, max_retries=max_retries)

    if args.list_presets:
        for name in list_presets(args.weights or None):
            print(name)
        return 0
    if not args.org:
        parser.error('Missing required organization: --org (or env GITHUB_ORG)')

    if client is None:
        _resolve_token(args, parser)
    weights, identity_policy = _resolve_scoring(args, parser)

    run = run_pipeline(args, weights, identity_policy, client=client)
    deliver(run, args)

    if run.failed_repositories:
        print(f"Excluded {len(run.failed_repositories)} repository(ies): {', '.join(sorted(run.failed_repositories))}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
