from __future__ import annotations

import unittest

from matching.settings import MatchingSettings
from matching.status import (
    InvalidMatchTransitionError,
    automatic_write_allowed,
    is_trusted,
    method_for_confidence,
    review_transition,
    status_for_confidence,
)
from matching.types import MatchMethod, MatchStatus


class TestConfidenceBands(unittest.TestCase):
    def test_status_partition(self) -> None:
        self.assertEqual(status_for_confidence(100), MatchStatus.CONFIRMED)
        self.assertEqual(status_for_confidence(90), MatchStatus.CONFIRMED)
        self.assertEqual(status_for_confidence(89), MatchStatus.PENDING)
        self.assertEqual(status_for_confidence(10), MatchStatus.PENDING)

    def test_method_partition(self) -> None:
        self.assertEqual(method_for_confidence(90), MatchMethod.AUTO_EXACT)
        self.assertEqual(method_for_confidence(70), MatchMethod.AUTO_FUZZY)
        self.assertEqual(method_for_confidence(69), MatchMethod.NONE)

    def test_custom_thresholds(self) -> None:
        settings = MatchingSettings(high_confidence=95, medium_confidence=80)
        self.assertEqual(status_for_confidence(94, settings), MatchStatus.PENDING)
        self.assertEqual(method_for_confidence(79, settings), MatchMethod.NONE)


class TestReviewRules(unittest.TestCase):
    def test_trusted_statuses(self) -> None:
        self.assertTrue(is_trusted(MatchStatus.CONFIRMED))
        self.assertTrue(is_trusted(MatchStatus.MANUAL))
        self.assertFalse(is_trusted(MatchStatus.PENDING))
        self.assertFalse(is_trusted(None))

    def test_reviewer_decisions_block_automatic_writes(self) -> None:
        self.assertTrue(automatic_write_allowed(None))
        self.assertTrue(automatic_write_allowed(MatchStatus.PENDING))
        self.assertTrue(automatic_write_allowed(MatchStatus.CONFIRMED))
        self.assertFalse(automatic_write_allowed(MatchStatus.MANUAL))
        self.assertFalse(automatic_write_allowed(MatchStatus.REJECTED))

    def test_allowed_transitions(self) -> None:
        self.assertEqual(review_transition(MatchStatus.PENDING, MatchStatus.CONFIRMED), MatchStatus.CONFIRMED)
        self.assertEqual(review_transition(MatchStatus.REJECTED, MatchStatus.PENDING), MatchStatus.PENDING)
        self.assertEqual(review_transition(MatchStatus.MANUAL, MatchStatus.REJECTED), MatchStatus.REJECTED)

    def test_illegal_transitions_raise(self) -> None:
        with self.assertRaises(InvalidMatchTransitionError):
            review_transition(MatchStatus.MANUAL, MatchStatus.CONFIRMED)
        with self.assertRaises(InvalidMatchTransitionError):
            review_transition(MatchStatus.REJECTED, MatchStatus.CONFIRMED)
        with self.assertRaises(InvalidMatchTransitionError):
            review_transition(MatchStatus.PENDING, "approved")
