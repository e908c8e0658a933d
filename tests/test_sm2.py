import unittest
from datetime import date, timedelta

from core import AttemptRecord, LearnedStatus
from scheduler.sm2 import SM2Scheduler, ScheduleResult, correct_streak, validate_quality

TODAY = date(2025, 3, 10)


def record(status=LearnedStatus.USABLE, days_ago=0, interval_days=0, easiness_factor=2.5, quality=4):
    return AttemptRecord(
        status=status,
        graded_at=TODAY - timedelta(days=days_ago),
        quality=quality,
        interval_days=interval_days,
        easiness_factor=easiness_factor,
    )


class TestSM2Scheduler(unittest.TestCase):
    """Tests for SM-2 spaced repetition algorithm."""

    def setUp(self):
        self.scheduler = SM2Scheduler()

    def test_first_attempt_uses_base_interval(self):
        """First attempt should use the first table entry and the default e-factor."""
        result = self.scheduler.schedule(None, 5)

        self.assertEqual(result.interval_days, 1)
        self.assertEqual(result.easiness_factor, 2.5)

    def test_correct_review_multiplies_interval(self):
        """A stored interval should be multiplied by the new e-factor."""
        # ef = 2.5 + 0.1 = 2.6 -> 6 * 2.6 = 15.6
        result = self.scheduler.schedule(record(interval_days=6), 5)

        self.assertAlmostEqual(result.easiness_factor, 2.6)
        self.assertEqual(result.interval_days, 16)

    def test_quality_4_keeps_efactor(self):
        result = self.scheduler.schedule(record(interval_days=10), 4)

        self.assertAlmostEqual(result.easiness_factor, 2.5)
        self.assertEqual(result.interval_days, 25)

    def test_quality_3_lowers_efactor(self):
        result = self.scheduler.schedule(record(interval_days=10), 3)

        self.assertAlmostEqual(result.easiness_factor, 2.36)

    def test_efactor_minimum_1_3(self):
        """E-factor should never go below 1.3."""
        result = self.scheduler.schedule(record(interval_days=10, easiness_factor=1.3), 1)

        self.assertEqual(result.easiness_factor, 1.3)

    def test_efactor_increases_with_higher_quality(self):
        """Higher quality should result in higher efactor."""
        result_3 = self.scheduler.schedule(record(interval_days=3), 3)
        result_5 = self.scheduler.schedule(record(interval_days=3), 5)

        self.assertGreater(result_5.easiness_factor, result_3.easiness_factor)

    def test_concept_factor_used_when_record_has_none(self):
        """Records loaded without their own e-factor start from the concept's."""
        # ef = 1.5 + 0.1 = 1.6 -> 10 * 1.6 = 16
        result = self.scheduler.schedule(record(interval_days=10, easiness_factor=0), 5, easiness_factor=1.5)

        self.assertAlmostEqual(result.easiness_factor, 1.6)
        self.assertEqual(result.interval_days, 16)

        own = self.scheduler.schedule(record(interval_days=10), 5, easiness_factor=1.5)
        self.assertAlmostEqual(own.easiness_factor, 2.6)

    def test_legacy_record_bootstraps_from_streak(self):
        """Records without an interval fall back to the base interval table."""
        log = [record(days_ago=0), record(days_ago=3)]
        result = self.scheduler.schedule(log[0], 4, log)

        self.assertEqual(result.interval_days, 7)

    def test_lapse_with_short_streak_resets_to_one_day(self):
        log = [record(interval_days=30), record(days_ago=30)]
        result = self.scheduler.schedule(log[0], 1, log)

        self.assertEqual(result.interval_days, 1)

    def test_lapse_shrinks_interval_by_streak(self):
        """Failed recall keeps part of the interval earned by a long streak."""
        cases = [(3, 15), (6, 18), (10, 21)]
        for streak, expected in cases:
            with self.subTest(streak=streak):
                log = [record(interval_days=30)] + [record(days_ago=i + 1) for i in range(streak - 1)]
                result = self.scheduler.schedule(log[0], 2, log)
                self.assertEqual(result.interval_days, expected)

    def test_quality_one_after_success_shortens_interval(self):
        """null->4, (0, 2.5)->4, (3, 2.6)->1 ends with a lower e-factor and shorter interval."""
        first = self.scheduler.schedule(None, 4)
        second = self.scheduler.schedule(record(interval_days=0, easiness_factor=2.5), 4)
        previous = record(interval_days=3, easiness_factor=2.6)
        third = self.scheduler.schedule(previous, 1)

        self.assertEqual(first.easiness_factor, 2.5)
        self.assertGreaterEqual(second.interval_days, 1)
        self.assertLess(third.easiness_factor, previous.easiness_factor)
        self.assertLess(third.interval_days, previous.interval_days)

    def test_monotonic_streak(self):
        """Repeated quality-4 answers never shrink the interval."""
        log = []
        previous_interval = 0
        for i in range(8):
            result = self.scheduler.schedule(log[0] if log else None, 4, log)
            self.assertGreaterEqual(result.interval_days, previous_interval)
            previous_interval = result.interval_days
            log.insert(0, record(days_ago=-i, interval_days=result.interval_days,
                                 easiness_factor=result.easiness_factor))

    def test_invalid_quality_raises(self):
        for quality in (0, 6, -1, True, "3", 3.5):
            with self.subTest(quality=quality):
                with self.assertRaises(ValueError):
                    validate_quality(quality)
                with self.assertRaises(ValueError):
                    self.scheduler.schedule(None, quality)

    def test_schedule_result_type(self):
        """Result should be a ScheduleResult dataclass."""
        result = self.scheduler.schedule(None, 4)

        self.assertIsInstance(result, ScheduleResult)


class TestBaseInterval(unittest.TestCase):

    def test_non_decreasing(self):
        scheduler = SM2Scheduler()
        values = [scheduler.base_interval(n) for n in range(20)]

        self.assertEqual(values, sorted(values))

    def test_capped_at_last_entry(self):
        scheduler = SM2Scheduler()

        self.assertEqual(scheduler.base_interval(100), scheduler.base_intervals[-1])

    def test_decreasing_table_rejected(self):
        with self.assertRaises(ValueError):
            SM2Scheduler(base_intervals=[1, 7, 3])
        with self.assertRaises(ValueError):
            SM2Scheduler(base_intervals=[])

    def test_from_settings(self):
        scheduler = SM2Scheduler.from_settings({"scheduler": {"base_intervals": [2, 4, 8]}})

        self.assertEqual(scheduler.base_interval(0), 2)
        self.assertEqual(scheduler.base_interval(5), 8)
        self.assertEqual(scheduler.min_easiness_factor, 1.3)


class TestCorrectStreak(unittest.TestCase):

    def test_stops_at_misunderstood(self):
        log = [record(), record(), record(LearnedStatus.MISUNDERSTOOD), record()]

        self.assertEqual(correct_streak(log), 2)

    def test_skips_unset(self):
        log = [record(), AttemptRecord(), record(LearnedStatus.UNDERSTOOD)]

        self.assertEqual(correct_streak(log), 2)

    def test_empty(self):
        self.assertEqual(correct_streak([]), 0)


class TestIsDue(unittest.TestCase):

    def setUp(self):
        self.scheduler = SM2Scheduler()

    def test_empty_log_is_due(self):
        self.assertTrue(self.scheduler.is_due([], TODAY))

    def test_misunderstood_is_due(self):
        log = [record(LearnedStatus.MISUNDERSTOOD, interval_days=30)]

        self.assertTrue(self.scheduler.is_due(log, TODAY))

    def test_unset_is_due(self):
        self.assertTrue(self.scheduler.is_due([AttemptRecord(graded_at=TODAY)], TODAY))

    def test_due_date_boundary(self):
        """Interval 7: due after 7 and 8 days, not after 6."""
        self.assertTrue(self.scheduler.is_due([record(days_ago=7, interval_days=7)], TODAY))
        self.assertFalse(self.scheduler.is_due([record(days_ago=6, interval_days=7)], TODAY))
        self.assertTrue(self.scheduler.is_due([record(days_ago=8, interval_days=7)], TODAY))

    def test_legacy_interval_bootstrapped(self):
        """A single legacy success waits base_interval(1) = 3 days."""
        self.assertFalse(self.scheduler.is_due([record(days_ago=2)], TODAY))
        self.assertTrue(self.scheduler.is_due([record(days_ago=3)], TODAY))

    def test_missing_date_is_due(self):
        log = [AttemptRecord(status=LearnedStatus.USABLE, interval_days=7)]

        self.assertTrue(self.scheduler.is_due(log, TODAY))

    def test_due_date(self):
        log = [record(days_ago=2, interval_days=5)]

        self.assertEqual(self.scheduler.due_date(log), TODAY + timedelta(days=3))


if __name__ == "__main__":
    unittest.main()
