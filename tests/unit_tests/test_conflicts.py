"""Tests for advisory overlap detection."""

from datetime import date

import pytest

from courtbook.services.conflicts import (
    describe_conflict,
    find_conflicts,
    find_overlap,
    intervals_overlap,
    times_overlap,
)
from tests.mocks.models import make_interval

BOOKED = make_interval("09:00", "10:30", court_id="c1", day=date(2024, 1, 10))


class TestOverlap:
    def test_partial_overlap_detected(self):
        candidate = make_interval("10:00", "11:00", court_id="c1", day=date(2024, 1, 10))
        assert find_overlap(candidate, [BOOKED]) == BOOKED

    def test_back_to_back_does_not_conflict(self):
        candidate = make_interval("10:30", "11:30", court_id="c1", day=date(2024, 1, 10))
        assert find_overlap(candidate, [BOOKED]) is None

    def test_booking_ending_at_start_does_not_conflict(self):
        candidate = make_interval("08:00", "09:00", court_id="c1", day=date(2024, 1, 10))
        assert find_overlap(candidate, [BOOKED]) is None

    def test_contained_interval(self):
        candidate = make_interval("09:30", "10:00", court_id="c1", day=date(2024, 1, 10))
        assert intervals_overlap(candidate, BOOKED)

    def test_other_court_ignored(self):
        candidate = make_interval("09:00", "10:30", court_id="c2", day=date(2024, 1, 10))
        assert find_overlap(candidate, [BOOKED]) is None

    def test_other_date_ignored(self):
        candidate = make_interval("09:00", "10:30", court_id="c1", day=date(2024, 1, 11))
        assert find_overlap(candidate, [BOOKED]) is None

    def test_empty_existing(self):
        assert find_overlap(BOOKED, []) is None

    @pytest.mark.parametrize(
        "start, end",
        [("08:00", "09:00"), ("08:30", "09:30"), ("09:00", "10:30"), ("10:00", "12:00"),
         ("10:30", "11:00"), ("07:00", "12:00")],
    )
    def test_symmetry(self, start, end):
        other = make_interval(start, end, court_id="c1", day=date(2024, 1, 10))
        forward = find_overlap(other, [BOOKED]) is not None
        backward = find_overlap(BOOKED, [other]) is not None
        assert forward == backward

    def test_times_overlap(self):
        assert times_overlap("09:00", "10:00", "09:59", "11:00")
        assert not times_overlap("09:00", "10:00", "10:00", "11:00")


class TestBatch:
    def test_find_conflicts_in_candidate_order(self):
        later = make_interval("09:00", "10:00", court_id="c1", day=date(2024, 1, 17))
        existing = [BOOKED, later]
        candidates = [
            make_interval("10:00", "11:00", court_id="c1", day=date(2024, 1, 3)),
            make_interval("10:00", "11:00", court_id="c1", day=date(2024, 1, 10)),
            make_interval("09:30", "10:30", court_id="c1", day=date(2024, 1, 17)),
        ]
        conflicts = find_conflicts(candidates, existing)
        assert [c.date for c, _ in conflicts] == [date(2024, 1, 10), date(2024, 1, 17)]
        assert conflicts[1][1] == later


class TestDescribe:
    def test_court_message(self):
        assert describe_conflict(BOOKED) == "Court is already booked from 09:00 to 10:30"

    def test_coach_message(self):
        assert describe_conflict(BOOKED, "coach") == "Coach is already teaching from 09:00 to 10:30"
