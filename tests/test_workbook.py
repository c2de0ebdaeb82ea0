from openpyxl import load_workbook

from aggregate.models import ContributorMetric
from pipeline import ReportRun
from report.workbook import write_workbook


def test_one_sheet_per_period(tmp_path):
    report = {
        'Last 2 weeks': {'alice': ContributorMetric(commits=2, reviews=1, score=0.3)},
        'Last 4 weeks': {},
    }
    run = ReportRun('acme', [('Last 2 weeks', ''), ('Last 4 weeks', '')], report, ['api'], {}, '')
    path = write_workbook(run, str(tmp_path / 'out' / 'report.xlsx'))
    wb = load_workbook(path)
    assert wb.sheetnames == ['Last 2 weeks', 'Last 4 weeks']
    rows = list(wb['Last 2 weeks'].iter_rows(values_only=True))
    assert rows[0] == ('User', 'Commits', 'Pull Requests', 'Reviews', 'Score')
    assert rows[1] == ('alice', 2, 0, 1, 0.3)
    assert list(wb['Last 4 weeks'].iter_rows(values_only=True)) == [('User', 'Commits', 'Pull Requests', 'Reviews', 'Score')]


def test_excluded_repositories_sheet(tmp_path):
    run = ReportRun('acme', [('Last 2 weeks', '')], {'Last 2 weeks': {}}, ['api', 'old'], {'old': 'GitHubAPIError: 500'}, '')
    wb = load_workbook(write_workbook(run, str(tmp_path / 'r.xlsx')))
    assert 'Excluded repositories' in wb.sheetnames
    assert list(wb['Excluded repositories'].iter_rows(values_only=True))[1] == ('old', 'GitHubAPIError: 500')
