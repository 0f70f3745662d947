from __future__ import annotations

import itertools
import unittest
from datetime import date, datetime, timezone
from decimal import Decimal

from raffledraw.engine import (
    allocate,
    default_monthly_name,
    default_weekly_fund_pct,
    default_weekly_name,
    draw_dates_in_month,
    validate_participant_distribution,
    validate_weekly_fund_pct,
    week_count,
    week_schedule,
)
from raffledraw.errors import (
    ConfigurationError,
    InvalidWeeklyDistributionError,
    NoActiveWeeksError,
)


class AllocateTests(unittest.TestCase):
    def test_even_split_gives_remainder_to_first_weeks(self) -> None:
        result = allocate(1000, 10, {1: 25, 2: 25, 3: 25, 4: 25}, 4)
        self.assertEqual([result[w].participants for w in range(1, 5)], [3, 3, 2, 2])
        for week in range(1, 5):
            self.assertEqual(result[week].fund, Decimal("250"))

    def test_inactive_weeks_receive_no_participants(self) -> None:
        result = allocate(1000, 5, {1: 50, 2: 0, 3: 50, 4: 0}, 4)
        self.assertEqual([result[w].participants for w in range(1, 5)], [3, 0, 2, 0])
        self.assertFalse(result[2].is_active)
        self.assertEqual(result[2].fund, 0)

    def test_missing_weeks_count_as_zero(self) -> None:
        result = allocate(500, 7, {2: 60, 5: 40}, 5)
        self.assertEqual(sorted(result), [1, 2, 3, 4, 5])
        self.assertEqual(result[2].participants, 4)
        self.assertEqual(result[5].participants, 3)
        self.assertEqual(result[1].participants, 0)
        self.assertEqual(result[2].fund, Decimal("300"))

    def test_fund_is_not_rounded(self) -> None:
        result = allocate(Decimal("100.10"), 0, {1: 33, 2: 33, 3: 34, 4: 0}, 4)
        self.assertEqual(result[1].fund, Decimal("33.033"))
        self.assertEqual(result[3].fund, Decimal("34.034"))

    def test_participant_totals_are_exact(self) -> None:
        splits = [
            {1: 25, 2: 25, 3: 25, 4: 25},
            {1: 100, 2: 0, 3: 0, 4: 0},
            {1: 0, 2: 40, 3: 0, 4: 60},
            {1: 10, 2: 20, 3: 30, 4: 40},
        ]
        for split, total in itertools.product(splits, [0, 1, 3, 7, 100, 1001]):
            with self.subTest(split=split, total=total):
                result = allocate(1000, total, split, 4)
                self.assertEqual(sum(a.participants for a in result.values()), total)
                for week, pct in split.items():
                    if pct == 0:
                        self.assertEqual(result[week].participants, 0)

    def test_no_active_weeks_is_an_error(self) -> None:
        with self.assertRaises(NoActiveWeeksError):
            allocate(1000, 3, {1: 0, 2: 0, 3: 0, 4: 0}, 4)

    def test_no_active_weeks_without_participants_is_all_zero(self) -> None:
        result = allocate(0, 0, {}, 4)
        self.assertTrue(all(a.participants == 0 for a in result.values()))

    def test_week_count_must_be_four_or_five(self) -> None:
        with self.assertRaises(ConfigurationError):
            allocate(1000, 10, {1: 100}, 3)

    def test_negative_participants_rejected(self) -> None:
        with self.assertRaises(InvalidWeeklyDistributionError):
            allocate(1000, -1, {1: 100}, 4)

    def test_weeks_beyond_month_are_rejected(self) -> None:
        with self.assertRaises(InvalidWeeklyDistributionError):
            allocate(1000, 10, {1: 50, 5: 50}, 4)
        with self.assertRaises(InvalidWeeklyDistributionError):
            allocate(1000, 10, {0: 50, 1: 50}, 4)


class WeeklySplitValidationTests(unittest.TestCase):
    def test_default_split_sums_to_100(self) -> None:
        self.assertEqual(default_weekly_fund_pct(4), {1: 25, 2: 25, 3: 25, 4: 25})
        self.assertEqual(default_weekly_fund_pct(5), {1: 20, 2: 20, 3: 20, 4: 20, 5: 20})

    def test_validate_fills_missing_weeks(self) -> None:
        pct = validate_weekly_fund_pct({1: 60, 3: 40.0}, 4)
        self.assertEqual(pct, {1: Decimal(60), 2: Decimal(0), 3: Decimal(40), 4: Decimal(0)})

    def test_validate_rejects_bad_totals(self) -> None:
        with self.assertRaises(InvalidWeeklyDistributionError):
            validate_weekly_fund_pct({1: 30, 2: 30, 3: 30, 4: 9}, 4)
        with self.assertRaises(InvalidWeeklyDistributionError):
            validate_weekly_fund_pct({1: 120, 2: -20}, 4)

    def test_validate_rejects_weeks_outside_month(self) -> None:
        with self.assertRaises(InvalidWeeklyDistributionError):
            validate_weekly_fund_pct({1: 20, 2: 20, 3: 20, 4: 20, 5: 20}, 4)

    def test_participant_distribution_must_match_total(self) -> None:
        validate_participant_distribution({1: 3, 2: 3, 3: 2, 4: 2}, 10, 4)
        with self.assertRaises(InvalidWeeklyDistributionError):
            validate_participant_distribution({1: 3, 2: 3, 3: 2, 4: 1}, 10, 4)


class ScheduleTests(unittest.TestCase):
    def test_saturdays_of_month(self) -> None:
        self.assertEqual(
            draw_dates_in_month(2026, 10),
            [date(2026, 10, d) for d in (3, 10, 17, 24, 31)],
        )
        self.assertEqual(week_count(2026, 10), 5)
        self.assertEqual(week_count(2026, 2), 4)

    def test_week_schedule_windows(self) -> None:
        schedule = week_schedule(2026, 2, 1)
        self.assertEqual(schedule.draw_date, datetime(2026, 2, 7, tzinfo=timezone.utc))
        self.assertEqual(
            schedule.registration_start, datetime(2026, 2, 1, tzinfo=timezone.utc)
        )
        self.assertEqual(schedule.registration_end, datetime(2026, 2, 6, tzinfo=timezone.utc))

    def test_week_schedule_rejects_missing_week(self) -> None:
        with self.assertRaises(ValueError):
            week_schedule(2026, 2, 5)

    def test_default_names(self) -> None:
        self.assertEqual(default_monthly_name(2026, 2), "Raffle February 2026")
        self.assertEqual(
            default_weekly_name("Raffle February 2026", 3), "Raffle February 2026 - Week 3"
        )
        with self.assertRaises(ValueError):
            default_monthly_name(2026, 13)


if __name__ == "__main__":
    unittest.main()
