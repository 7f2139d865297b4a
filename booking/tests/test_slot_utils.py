from datetime import date, time

from django.test import SimpleTestCase

from booking.exceptions import ValidationError
from booking.services.slot_utils import (
    daterange,
    generate_day_candidates,
    intervals_overlap,
    parse_date,
    parse_hhmm,
)


class IntervalOverlapTests(SimpleTestCase):
    def test_touching_intervals_do_not_overlap(self):
        self.assertFalse(intervals_overlap(time(10), time(11), time(11), time(12)))
        self.assertFalse(intervals_overlap(time(11), time(12), time(10), time(11)))

    def test_partial_and_contained_intervals_overlap(self):
        self.assertTrue(intervals_overlap(time(10), time(11), time(10, 30), time(11, 30)))
        self.assertTrue(intervals_overlap(time(9), time(12), time(10), time(11)))
        self.assertTrue(intervals_overlap(time(10), time(11), time(10), time(11)))


class ParsingTests(SimpleTestCase):
    def test_parse_hhmm(self):
        self.assertEqual(parse_hhmm("09:30"), time(9, 30))
        self.assertEqual(parse_hhmm("09:30:15"), time(9, 30, 15))
        self.assertEqual(parse_hhmm(time(8, 0)), time(8, 0))

    def test_parse_hhmm_rejects_garbage(self):
        for bad in ("9", "25:00", "aa:bb", None):
            with self.assertRaises(ValidationError):
                parse_hhmm(bad)

    def test_parse_date(self):
        self.assertEqual(parse_date("2030-01-31"), date(2030, 1, 31))
        with self.assertRaises(ValidationError):
            parse_date("31.01.2030")

    def test_daterange_is_inclusive(self):
        days = list(daterange(date(2030, 1, 30), date(2030, 2, 1)))
        self.assertEqual(days, [date(2030, 1, 30), date(2030, 1, 31), date(2030, 2, 1)])


class DayCandidateTests(SimpleTestCase):
    def test_back_to_back_candidates(self):
        self.assertEqual(
            generate_day_candidates(time(9, 0), 60, 3),
            [(time(9), time(10)), (time(10), time(11)), (time(11), time(12))],
        )

    def test_candidates_may_not_reach_midnight(self):
        with self.assertRaises(ValidationError):
            generate_day_candidates(time(22, 0), 60, 2)
        # 22:00-23:00 and 23:00-23:59 style sequences stay inside the day
        self.assertEqual(len(generate_day_candidates(time(22, 0), 59, 2)), 2)

    def test_huge_durations_are_refused_before_arithmetic(self):
        with self.assertRaises(ValidationError):
            generate_day_candidates(time(9, 0), 10**12, 1)
        with self.assertRaises(ValidationError):
            generate_day_candidates(time(0, 0), 1, 10**9)
