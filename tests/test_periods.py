from datetime import datetime, timezone

from aggregate.periods import generate_periods, PERIODS, PERIOD_LABELS, format_timestamp

NOW = datetime(2026, 10, 18, 12, 30, 0, tzinfo=timezone.utc)


def test_periods_are_ordered_and_relative_to_now():
    periods = generate_periods(now=NOW)
    assert [label for label, _ in periods] == ['Last 2 weeks', 'Last 4 weeks', 'Last 12 weeks', 'Last 24 weeks']
    assert dict(periods) == {
        'Last 2 weeks': '2026-10-04T12:30:00Z',
        'Last 4 weeks': '2026-09-20T12:30:00Z',
        'Last 12 weeks': '2026-07-26T12:30:00Z',
        'Last 24 weeks': '2026-05-03T12:30:00Z',
    }


def test_windows_are_nested():
    sinces = [since for _, since in generate_periods(now=NOW)]
    assert sinces == sorted(sinces, reverse=True)
    assert [days for _, days in PERIODS] == [14, 28, 84, 168]
    assert PERIOD_LABELS[0] == 'Last 2 weeks'


def test_injectable_clock_is_deterministic():
    calls = []

    def clock():
        calls.append(1)
        return NOW

    assert generate_periods(clock=clock) == generate_periods(now=NOW)
    assert calls == [1]


def test_naive_datetime_treated_as_utc():
    assert format_timestamp(datetime(2026, 1, 2, 3, 4, 5)) == '2026-01-02T03:04:05Z'
