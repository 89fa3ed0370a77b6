from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

import pytest

from services.billing.cycle import (
    BillingCycle,
    add_months,
    anchored_date,
    compute_billing_cycle,
    local_date_string,
    to_local_datetime,
)


def test_cycle_starts_on_anchor_day_of_current_month() -> None:
    cycle = compute_billing_cycle(date(2024, 1, 15), datetime(2024, 3, 20, 10, 30))

    assert cycle.start == date(2024, 3, 15)
    assert cycle.end == date(2024, 4, 15)


def test_cycle_rolls_back_when_now_precedes_anchor_day() -> None:
    cycle = compute_billing_cycle(date(2024, 1, 15), datetime(2024, 3, 10))

    assert cycle == BillingCycle(start=date(2024, 2, 15), end=date(2024, 3, 15))


def test_cycle_includes_anchor_day_itself() -> None:
    cycle = compute_billing_cycle(date(2023, 11, 5), date(2024, 1, 5))

    assert cycle.start == date(2024, 1, 5)
    assert cycle.end == date(2024, 2, 5)


def test_cycle_crosses_year_boundary() -> None:
    cycle = compute_billing_cycle(date(2023, 6, 20), datetime(2024, 1, 3))

    assert cycle.start == date(2023, 12, 20)
    assert cycle.end == date(2024, 1, 20)


def test_anchor_31_clamps_to_short_months_without_drifting() -> None:
    anchor = date(2024, 1, 31)

    february = compute_billing_cycle(anchor, datetime(2024, 3, 10))
    march = compute_billing_cycle(anchor, datetime(2024, 4, 2))
    april = compute_billing_cycle(anchor, datetime(2024, 5, 1))

    assert february == BillingCycle(start=date(2024, 2, 29), end=date(2024, 3, 31))
    assert march == BillingCycle(start=date(2024, 3, 31), end=date(2024, 4, 30))
    assert april == BillingCycle(start=date(2024, 4, 30), end=date(2024, 5, 31))


def test_anchor_30_in_non_leap_february() -> None:
    cycle = compute_billing_cycle(date(2022, 11, 30), datetime(2023, 3, 1))

    assert cycle == BillingCycle(start=date(2023, 2, 28), end=date(2023, 3, 30))


@pytest.mark.parametrize("anchor_day", [1, 15, 28, 29, 30, 31])
def test_cycle_always_contains_now_and_spans_about_a_month(anchor_day: int) -> None:
    anchor = date(2023, 12, anchor_day)
    day = date(2024, 1, 1)
    while day < date(2025, 1, 1):
        cycle = compute_billing_cycle(anchor, day)
        assert cycle.start <= day < cycle.end, (anchor_day, day, cycle)
        assert 28 <= (cycle.end - cycle.start).days <= 31
        day += timedelta(days=1)


def test_contains_uses_half_open_window() -> None:
    cycle = BillingCycle(start=date(2024, 2, 1), end=date(2024, 3, 1))

    assert cycle.contains(date(2024, 2, 1))
    assert cycle.contains(datetime(2024, 2, 29, 23, 59))
    assert not cycle.contains(date(2024, 3, 1))
    assert cycle.to_dict() == {"cycleStart": "2024-02-01", "cycleEnd": "2024-03-01"}


def test_local_date_string_uses_local_calendar_not_utc() -> None:
    # 02:30 UTC on March 2nd is still March 1st in Asuncion (UTC-3).
    late_evening = datetime(2024, 3, 2, 2, 30, tzinfo=timezone.utc)

    assert local_date_string(late_evening) == "2024-03-01"
    assert late_evening.date().isoformat() == "2024-03-02"


def test_local_date_string_keeps_naive_values_as_local() -> None:
    assert local_date_string(datetime(2024, 7, 9, 23, 59)) == "2024-07-09"
    assert local_date_string(date(2024, 7, 9)) == "2024-07-09"


def test_aware_now_is_converted_before_picking_the_cycle() -> None:
    anchor = date(2024, 1, 2)
    # 01:00 UTC on Feb 2nd is Feb 1st locally, still inside the January cycle.
    cycle = compute_billing_cycle(anchor, datetime(2024, 2, 2, 1, 0, tzinfo=timezone.utc))

    assert cycle.start == date(2024, 1, 2)
    assert cycle.end == date(2024, 2, 2)


def test_billing_timezone_override(monkeypatch: pytest.MonkeyPatch) -> None:
    from services.billing.config import clear_billing_settings_cache

    monkeypatch.setenv("BILLING_TIMEZONE", "Asia/Tokyo")
    clear_billing_settings_cache()

    assert to_local_datetime(datetime(2024, 3, 1, 16, 0, tzinfo=timezone.utc)) == datetime(2024, 3, 2, 1, 0)


def test_month_arithmetic_helpers() -> None:
    assert add_months(2024, 12, 1) == (2025, 1)
    assert add_months(2024, 1, -1) == (2023, 12)
    assert anchored_date(2024, 2, 31) == date(2024, 2, 29)
    assert anchored_date(2024, 6, 31) == date(2024, 6, 30)
