"""
Spreadsheet export: one worksheet per reporting period.
"""
import os
from typing import Union
from openpyxl import Workbook
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter

from aggregate.models import PeriodLedgers
from pipeline import ReportRun
from .renderer import COLUMNS, as_run, sorted_rows

# Excel rejects sheet titles longer than 31 characters and a few punctuation characters
_MAX_SHEET_TITLE = 31
_INVALID_TITLE_CHARS = '[]:*?/\\'


def _sheet_title(label: str) -> str:
    cleaned = ''.join('-' if ch in _INVALID_TITLE_CHARS else ch for ch in label)
    return cleaned[:_MAX_SHEET_TITLE] or 'Sheet'


def build_workbook(source: Union[ReportRun, PeriodLedgers]) -> Workbook:
    run = as_run(source)
    wb = Workbook()
    wb.remove(wb.active)
    for label, _since in run.periods:
        ws = wb.create_sheet(title=_sheet_title(label))
        ws.append(COLUMNS)
        for cell in ws[1]:
            cell.font = Font(bold=True)
        for identity, metric in sorted_rows(run.report.get(label, {})):
            ws.append([identity, metric.commits, metric.pull_requests, metric.reviews, metric.score])
        ws.column_dimensions[get_column_letter(1)].width = 30
        ws.freeze_panes = 'A2'
    if run.failed_repositories:
        ws = wb.create_sheet(title='Excluded repositories')
        ws.append(['Repository', 'Reason'])
        for repo, reason in sorted(run.failed_repositories.items()):
            ws.append([repo, reason])
    if not wb.sheetnames:
        wb.create_sheet(title='Report')
    return wb


def write_workbook(source: Union[ReportRun, PeriodLedgers], path: str) -> str:
    """Write the report workbook to `path` (creating parent directories) and return the path."""
    out_dir = os.path.dirname(path)
    if out_dir:
        os.makedirs(out_dir, exist_ok=True)
    build_workbook(source).save(path)
    return path
