"""Tests for sample classification and message formatting."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest

from healthrelay.health import Sample
from healthrelay.notify import SampleClassifier, format_mindful_message, format_sleep_message

from .conftest import RecordingNotifier, make_mindful_sample, make_sleep_sample


class TestFormatting:
    def test_sleep_message_in_hours(self) -> None:
        assert format_sleep_message(28800) == "Slept 8.000000 hrs today"

    def test_sleep_message_keeps_fraction(self) -> None:
        assert format_sleep_message(27000) == "Slept 7.500000 hrs today"

    def test_mindful_message_in_minutes(self) -> None:
        assert format_mindful_message(1500) == "Meditated 25.000000 minutes"

    def test_mindful_message_keeps_fraction(self) -> None:
        assert format_mindful_message(90) == "Meditated 1.500000 minutes"


class TestSleepAnalysis:
    def test_asleep_metadata_produces_message(
        self, recording_notifier: RecordingNotifier
    ) -> None:
        classifier = SampleClassifier(recording_notifier)

        message = classifier.handle_sample(make_sleep_sample(28800))

        assert message == "Slept 8.000000 hrs today"
        assert recording_notifier.sent == [("Slept 8.000000 hrs today", "sleep_analysis")]

    def test_float_asleep_value(self) -> None:
        assert SampleClassifier().classify(make_sleep_sample(25200.0)) == (
            "Slept 7.000000 hrs today"
        )

    @pytest.mark.parametrize("asleep", [None, "28800", True, [28800]])
    def test_missing_or_non_numeric_asleep_is_dropped(
        self, recording_notifier: RecordingNotifier, asleep: object
    ) -> None:
        classifier = SampleClassifier(recording_notifier)

        assert classifier.handle_sample(make_sleep_sample(asleep)) is None
        assert recording_notifier.sent == []

    def test_other_metadata_keys_are_ignored(
        self, recording_notifier: RecordingNotifier
    ) -> None:
        sample = make_sleep_sample(None, metadata={"InBed": 30000})

        assert SampleClassifier(recording_notifier).handle_sample(sample) is None
        assert recording_notifier.sent == []


class TestMindfulSession:
    def test_twenty_five_minute_session(self, recording_notifier: RecordingNotifier) -> None:
        sample = Sample(
            category="mindful_session",
            start=datetime(2026, 10, 18, 10, 0, 0, tzinfo=UTC),
            end=datetime(2026, 10, 18, 10, 25, 0, tzinfo=UTC),
        )

        SampleClassifier(recording_notifier).handle_sample(sample)

        assert recording_notifier.sent == [("Meditated 25.000000 minutes", "mindful_session")]

    def test_same_duration_twice_notifies_once(
        self, recording_notifier: RecordingNotifier
    ) -> None:
        classifier = SampleClassifier(recording_notifier)
        first = make_mindful_sample(10, start=datetime(2026, 10, 18, 8, 0, tzinfo=UTC))
        second = make_mindful_sample(10, start=datetime(2026, 10, 18, 20, 0, tzinfo=UTC))

        classifier.handle_sample(first)
        classifier.handle_sample(second)

        assert recording_notifier.texts == ["Meditated 10.000000 minutes"]

    def test_different_durations_both_notify(
        self, recording_notifier: RecordingNotifier
    ) -> None:
        classifier = SampleClassifier(recording_notifier)

        classifier.handle_sample(make_mindful_sample(10))
        classifier.handle_sample(make_mindful_sample(15))

        assert recording_notifier.texts == [
            "Meditated 10.000000 minutes",
            "Meditated 15.000000 minutes",
        ]
        assert classifier.last_mindful_seconds == 900

    def test_duplicate_only_compares_with_last_session(
        self, recording_notifier: RecordingNotifier
    ) -> None:
        classifier = SampleClassifier(recording_notifier)

        for minutes in (10, 15, 10):
            classifier.handle_sample(make_mindful_sample(minutes))

        assert len(recording_notifier.sent) == 3

    def test_sleep_samples_do_not_reset_dedup_state(
        self, recording_notifier: RecordingNotifier
    ) -> None:
        classifier = SampleClassifier(recording_notifier)

        classifier.handle_sample(make_mindful_sample(10))
        classifier.handle_sample(make_sleep_sample(28800))
        classifier.handle_sample(make_mindful_sample(10))

        assert recording_notifier.texts == [
            "Meditated 10.000000 minutes",
            "Slept 8.000000 hrs today",
        ]


class TestUnhandledCategory:
    def test_unknown_category_is_not_notified(
        self, recording_notifier: RecordingNotifier
    ) -> None:
        sample = Sample(
            category="heart_rate",
            start=datetime(2026, 10, 18, 10, 0, tzinfo=UTC),
            end=datetime(2026, 10, 18, 10, 1, tzinfo=UTC),
            metadata={"Asleep": 28800},
        )

        assert SampleClassifier(recording_notifier).handle_sample(sample) is None
        assert recording_notifier.sent == []
        assert sample.category == "heart_rate"

    def test_classifier_without_notifier_still_returns_message(self) -> None:
        assert SampleClassifier().handle_sample(make_mindful_sample(5)) == (
            "Meditated 5.000000 minutes"
        )
