import pytest

from fibonacci_face import config
from fibonacci_face.share import COPIED, FAILED, SHARED, ShareLabel, build_share_payload


class FakeClock:
    def __init__(self):
        self.now = 100.0

    def __call__(self):
        return self.now


def test_payload_carries_the_score():
    payload = build_share_payload(82, url="https://example.test")

    assert payload.title == "My Fibonacci Face Analysis"
    assert "I scored 82% on the Golden Ratio" in payload.text
    assert payload.url == "https://example.test"
    assert payload.clipboard_text == payload.text + "\nhttps://example.test"


def test_payload_defaults_to_base_url():
    assert build_share_payload(50).url == config.BASE_URL


def test_copied_label_reverts_after_two_seconds():
    clock = FakeClock()
    label = ShareLabel(clock)
    assert label.text == "Share"

    label.record(COPIED)
    assert label.text == "Copied!"
    clock.now += 1.9
    assert label.text == "Copied!"
    clock.now += 0.2
    assert label.text == "Share"


def test_failed_label():
    clock = FakeClock()
    label = ShareLabel(clock)
    label.record(FAILED)
    assert label.text == "Failed!"
    clock.now += 2.0
    assert label.text == "Share"


def test_native_share_keeps_default_label():
    label = ShareLabel(FakeClock())
    label.record(COPIED)
    label.record(SHARED)
    assert label.text == "Share"


def test_unknown_outcome_is_rejected():
    with pytest.raises(ValueError):
        ShareLabel(FakeClock()).record("emailed")
