from datetime import timedelta
from decimal import Decimal

import pytest
from pydantic import ValidationError

from transaction_dedup import DeduplicationSettings


def test_defaults_match_the_fixed_scorer_constants():
    s = DeduplicationSettings()
    assert s.amount_tolerance == Decimal("0.01")
    assert s.date_window == timedelta(hours=24)
    assert s.description_threshold == 0.8
    assert s.duplicate_threshold == 70
    assert s.auto_merge_threshold is None
    assert s.amount_sign == "signed"
    assert (s.weights.amount, s.weights.date, s.weights.description) == (40, 30, 20)
    assert (s.weights.account, s.weights.provider_id) == (10, 50)
    assert all(s.enabled.model_dump().values())


@pytest.mark.parametrize(
    "kwargs",
    [
        {"description_threshold": 1.5},
        {"date_window_hours": -1},
        {"date_window_hours": 24 * 31},
        {"amount_tolerance": "-0.01"},
        {"duplicate_threshold": -5},
        {"weights": {"amount": -1}},
        {"amount_sign": "flipped"},
        {"unknown_field": 1},
        {"duplicate_threshold": 70, "auto_merge_threshold": 60},
    ],
)
def test_invalid_settings_are_rejected(kwargs):
    with pytest.raises(ValidationError):
        DeduplicationSettings(**kwargs)


def test_settings_are_frozen():
    s = DeduplicationSettings()
    with pytest.raises(ValidationError):
        s.duplicate_threshold = 10  # type: ignore[misc]


def test_merged_applies_partial_nested_overrides():
    base = DeduplicationSettings(weights={"amount": 35})
    merged = base.merged(
        {"duplicate_threshold": 80, "weights": {"date": 25}, "enabled": {"account": False}}
    )
    assert merged.duplicate_threshold == 80
    assert merged.weights.amount == 35  # kept from base
    assert merged.weights.date == 25
    assert merged.enabled.account is False
    assert merged.enabled.amount is True
    # The original is untouched.
    assert base.duplicate_threshold == 70
    assert base.merged(None) is base


def test_merged_revalidates():
    with pytest.raises(ValidationError):
        DeduplicationSettings().merged({"description_threshold": 2})


def test_from_env_reads_prefixed_variables():
    env = {
        "DEDUP_AMOUNT_TOLERANCE": "0.05",
        "DEDUP_DATE_WINDOW_HOURS": "48",
        "DEDUP_DESCRIPTION_THRESHOLD": "0.75",
        "DEDUP_DUPLICATE_THRESHOLD": "60",
        "DEDUP_AUTO_MERGE_THRESHOLD": "140",
        "DEDUP_AMOUNT_SIGN": "Absolute",
        "UNRELATED": "ignored",
    }
    s = DeduplicationSettings.from_env(env)
    assert s.amount_tolerance == Decimal("0.05")
    assert s.date_window == timedelta(hours=48)
    assert s.description_threshold == 0.75
    assert s.duplicate_threshold == 60
    assert s.auto_merge_threshold == 140
    assert s.amount_sign == "absolute"


def test_from_env_blank_and_off_values():
    s = DeduplicationSettings.from_env(
        {"DEDUP_DUPLICATE_THRESHOLD": "  ", "DEDUP_AUTO_MERGE_THRESHOLD": "off"}
    )
    assert s == DeduplicationSettings()


def test_from_env_defaults_to_process_environment(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("DEDUP_DUPLICATE_THRESHOLD", "90")
    assert DeduplicationSettings.from_env().duplicate_threshold == 90


def test_from_env_rejects_garbage():
    with pytest.raises(ValidationError):
        DeduplicationSettings.from_env({"DEDUP_DUPLICATE_THRESHOLD": "lots"})
