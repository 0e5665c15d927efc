"""Tests for reschedule impact scoring and capacity search."""

from datetime import date

import pytest

from taskbrain.intelligence.reschedule import find_open_days, fits, impact_score

TODAY = date(2025, 3, 10)


class TestImpactScore:
    def test_empty_day_a_week_out_at_lowest_priority(self) -> None:
        assert impact_score(TODAY, date(2025, 3, 17), 0, 480, 1) == 1.0

    def test_today_at_top_priority(self) -> None:
        assert impact_score(TODAY, TODAY, 0, 480, 5) == pytest.approx(0.425)

    def test_slack_is_clamped(self) -> None:
        assert impact_score(TODAY, date(2025, 4, 10), 0, 480, 1) == 1.0
        assert impact_score(TODAY, date(2025, 3, 1), 480, 480, 1) == pytest.approx(0.15)

    def test_busier_day_scores_lower(self) -> None:
        light = impact_score(TODAY, date(2025, 3, 12), 60, 480, 3)
        busy = impact_score(TODAY, date(2025, 3, 12), 400, 480, 3)
        assert light > busy


class TestFindOpenDays:
    def test_skips_full_days(self) -> None:
        loads = {date(2025, 3, 10): 480, date(2025, 3, 11): 450}
        assert find_open_days(loads, TODAY, 60, 480, limit=2) == [
            date(2025, 3, 12),
            date(2025, 3, 13),
        ]

    def test_search_window_is_bounded(self) -> None:
        loads = {date(2025, 3, 10 + i): 480 for i in range(14)}
        assert find_open_days(loads, TODAY, 30, 480, limit=3) == []

    def test_fits_at_exact_capacity(self) -> None:
        assert fits({TODAY: 420}, TODAY, 60, 480)
        assert not fits({TODAY: 421}, TODAY, 60, 480)
