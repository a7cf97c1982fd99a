"""Tests for time helpers."""

from datetime import timezone

from tripdesk.infra.time import utc_now, utc_now_iso


def test_utc_now_is_aware():
    assert utc_now().tzinfo == timezone.utc


def test_utc_now_iso_has_z_suffix_and_millis():
    value = utc_now_iso()
    assert value.endswith("Z")
    # 2025-06-01T10:00:00.123Z
    assert len(value) == 24
