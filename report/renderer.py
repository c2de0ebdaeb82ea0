"""
Report renderer: turn a report run into HTML (the email body), Markdown, CSV, JSON or plain text.
HTML and Markdown use the Jinja2 templates in report/templates.
"""

from typing import Any, Dict, List, Optional, Tuple, Union
import os
import io
import csv
import json
from jinja2 import Environment, FileSystemLoader, select_autoescape

from aggregate.models import ContributorLedger, ContributorMetric, PeriodLedgers
from pipeline import ReportRun

TEMPLATE_DIR = os.path.join(os.path.dirname(__file__), 'templates')
COLUMNS = ['User', 'Commits', 'Pull Requests', 'Reviews', 'Score']

_env: Optional[Environment] = None


def _environment() -> Environment:
    global _env
    if _env is None:
        _env = Environment(
            loader=FileSystemLoader(TEMPLATE_DIR),
            autoescape=select_autoescape(['html', 'html.j2', 'xml']),
            trim_blocks=True,
            lstrip_blocks=True,
        )
    return _env


def as_run(source: Union[ReportRun, PeriodLedgers]) -> ReportRun:
    """Accept either a ReportRun or a bare period -> ledger mapping."""
    if isinstance(source, ReportRun):
        return source
    periods = [(label, '') for label in source.keys()]
    return ReportRun(org='', periods=periods, report=source, repositories=[], failed_repositories={}, generated_at='')


def sorted_rows(ledger: ContributorLedger) -> List[Tuple[str, ContributorMetric]]:
    """Ledger entries ordered by score (highest first), then identity."""
    return sorted((ledger or {}).items(), key=lambda item: (-item[1].score, item[0]))


def _sections(run: ReportRun) -> List[Dict[str, Any]]:
    sections = []
    for label, since in run.periods:
        sections.append({'label': label, 'since': since, 'rows': sorted_rows(run.report.get(label, {}))})
    return sections


def _context(run: ReportRun, title: Optional[str]) -> Dict[str, Any]:
    return {
        'title': title or (f"GitHub Metrics Report: {run.org}" if run.org else "GitHub Metrics Report"),
        'org': run.org,
        'generated_at': run.generated_at,
        'sections': _sections(run),
        'repositories': run.included_repositories,
        'failed_repositories': run.failed_repositories,
        'columns': COLUMNS,
    }


def render_html(source: Union[ReportRun, PeriodLedgers], title: Optional[str] = None) -> str:
    run = as_run(source)
    return _environment().get_template('report.html.j2').render(**_context(run, title))


def render_markdown(source: Union[ReportRun, PeriodLedgers], title: Optional[str] = None) -> str:
    run = as_run(source)
    return _environment().get_template('report.md.j2').render(**_context(run, title))


def render_csv(source: Union[ReportRun, PeriodLedgers]) -> str:
    """One row per (period, user) with a header."""
    run = as_run(source)
    output = io.StringIO()
    writer = csv.writer(output, lineterminator='\n')
    writer.writerow(['period', 'user', 'commits', 'pull_requests', 'reviews', 'score'])
    for section in _sections(run):
        for identity, metric in section['rows']:
            writer.writerow([section['label'], identity, metric.commits, metric.pull_requests, metric.reviews, metric.score])
    return output.getvalue()


def render_json(source: Union[ReportRun, PeriodLedgers]) -> str:
    run = as_run(source)
    doc = {
        'org': run.org,
        'generated_at': run.generated_at,
        'periods': [
            {
                'label': section['label'],
                'since': section['since'],
                'contributors': {identity: metric.to_dict() for identity, metric in section['rows']},
            }
            for section in _sections(run)
        ],
        'repositories': run.included_repositories,
        'failed_repositories': run.failed_repositories,
    }
    return json.dumps(doc, indent=2)


def render_text(source: Union[ReportRun, PeriodLedgers]) -> str:
    """Render a plain-text summary."""
    run = as_run(source)
    lines = []
    for section in _sections(run):
        lines.append(section['label'])
        if not section['rows']:
            lines.append("  (no activity)")
        for identity, metric in section['rows']:
            lines.append(
                f"  {identity}: commits={metric.commits} pull_requests={metric.pull_requests} "
                f"reviews={metric.reviews} score={metric.score:.2f}"
            )
    if run.failed_repositories:
        lines.append("Excluded repositories:")
        for repo, reason in sorted(run.failed_repositories.items()):
            lines.append(f"  {repo}: {reason}")
    return "\n".join(lines)


def render(source: Union[ReportRun, PeriodLedgers], fmt: str = 'text', title: Optional[str] = None) -> str:
    """Main render function. Unknown formats fall back to plain text."""
    fmt_l = (fmt or 'text').lower()
    if fmt_l in ('md', 'markdown'):
        return render_markdown(source, title)
    if fmt_l == 'csv':
        return render_csv(source)
    if fmt_l in ('html', 'htm'):
        return render_html(source, title)
    if fmt_l in ('json', 'js'):
        return render_json(source)
    return render_text(source)
