from datetime import date, datetime, timezone

import pytest

from uwguessr.services.daily import date_key, parse_date_key, reference_date, retention_cutoff


class TestDateKey:
    def test_evening_in_new_york_is_previous_utc_day(self):
        # 03:30 UTC on Oct 17 is 23:30 EDT on Oct 16
        now = datetime(2026, 10, 17, 3, 30, tzinfo=timezone.utc)
        assert date_key(now) == "2026-10-16"

    def test_after_new_york_midnight(self):
        now = datetime(2026, 10, 17, 4, 0, tzinfo=timezone.utc)
        assert date_key(now) == "2026-10-17"

    def test_standard_time_offset(self):
        # EST is UTC-5 in January
        assert date_key(datetime(2026, 1, 15, 4, 59, tzinfo=timezone.utc)) == "2026-01-14"
        assert date_key(datetime(2026, 1, 15, 5, 0, tzinfo=timezone.utc)) == "2026-01-15"

    def test_naive_datetimes_are_utc(self):
        assert date_key(datetime(2026, 10, 17, 3, 30)) == "2026-10-16"

    def test_other_reference_timezone(self):
        now = datetime(2026, 10, 17, 3, 30, tzinfo=timezone.utc)
        assert date_key(now, tz_name="UTC") == "2026-10-17"

    def test_defaults_to_now(self):
        assert parse_date_key(date_key()) == reference_date()


class TestHelpers:
    def test_parse_date_key(self):
        assert parse_date_key("2026-10-17") == date(2026, 10, 17)

    @pytest.mark.parametrize("key", ["", "yesterday", "2026-13-01", "2026/10/17"])
    def test_parse_rejects_garbage(self, key):
        assert parse_date_key(key) is None

    def test_retention_cutoff(self):
        assert retention_cutoff("2026-10-17", 7) == date(2026, 10, 10)
        assert retention_cutoff("2026-03-03", 7) == date(2026, 2, 24)
