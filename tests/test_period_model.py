"""Tests du modèle Période / Period value model tests."""

from datetime import date, datetime

import pytest

from billboards.models.period import PeriodType
from billboards.services.period_model import (
    Period,
    format_period,
    normalize_legacy_input,
    parse_date,
    periods_overlap,
    validate,
    validate_slot_ids,
)


def test_touching_intervals_do_not_overlap():
    assert not periods_overlap(date(2025, 1, 1), date(2025, 1, 15), date(2025, 1, 15), date(2025, 1, 20))
    assert not periods_overlap(date(2025, 1, 15), date(2025, 1, 20), date(2025, 1, 1), date(2025, 1, 15))


def test_slot_last_day_is_booked():
    slot = Period(PeriodType.DISCRETE, date(2025, 1, 1), date(2025, 1, 14), ("2025-02",))
    assert slot.end_exclusive == date(2025, 1, 15)
    assert slot.overlaps(Period(PeriodType.CUSTOM, date(2025, 1, 14), date(2025, 1, 20)))
    assert not slot.overlaps(Period(PeriodType.CUSTOM, date(2025, 1, 15), date(2025, 1, 20)))
    # Une fin CUSTOM reste exclusive / A CUSTOM end stays exclusive
    assert not slot.overlaps(Period(PeriodType.CUSTOM, date(2024, 12, 20), date(2025, 1, 1)))


def test_overlap_is_symmetric():
    a = (date(2025, 1, 1), date(2025, 1, 15))
    b = (date(2025, 1, 10), date(2025, 1, 20))
    assert periods_overlap(*a, *b)
    assert periods_overlap(*b, *a)


def test_duration_counts_last_day():
    period = Period(PeriodType.CUSTOM, date(2025, 1, 1), date(2025, 1, 14))
    assert period.duration_days == 14


def test_parse_date_accepts_full_iso():
    assert parse_date("2025-01-01T00:00:00Z") == date(2025, 1, 1)
    assert parse_date(datetime(2025, 3, 4, 10, 30)) == date(2025, 3, 4)
    with pytest.raises(ValueError):
        parse_date("01/01/2025")


def test_normalize_plain_list_is_discrete():
    normalized = normalize_legacy_input(["2025-02", "2025-04"])
    assert normalized.period_type == PeriodType.DISCRETE
    assert normalized.slot_ids == ["2025-02", "2025-04"]


def test_normalize_legacy_date_pair_is_custom():
    normalized = normalize_legacy_input({"data_inicio": "2025-01-01", "data_fim": "2025-01-20"})
    assert normalized.period_type == PeriodType.CUSTOM
    assert normalized.start_date == date(2025, 1, 1)
    assert normalized.end_date == date(2025, 1, 20)


def test_normalize_legacy_bi_week_ids_and_alias_type():
    normalized = normalize_legacy_input({"periodType": "bi-week", "bi_week_ids": ["2025-02"]})
    assert normalized.period_type == PeriodType.DISCRETE
    assert normalized.slot_ids == ["2025-02"]


def test_normalize_explicit_type_wins():
    normalized = normalize_legacy_input({
        "period_type": "CUSTOM",
        "slot_ids": ["2025-02"],
        "start_date": "2025-01-01",
        "end_date": "2025-01-10",
    })
    assert normalized.period_type == PeriodType.CUSTOM
    assert "slot_ids must not be provided for CUSTOM periods" in validate(normalized).errors


def test_normalize_records_bad_dates():
    normalized = normalize_legacy_input({"startDate": "not-a-date", "endDate": "2025-01-10"})
    assert normalized.invalid_fields == ["start_date"]
    assert "start_date is not a valid date" in validate(normalized).errors


def test_validate_unknown_type():
    result = validate(normalize_legacy_input({"period_type": "WEEKLY"}))
    assert not result.valid
    assert result.errors[0] == "Invalid period type. Use 'DISCRETE' or 'CUSTOM'"


def test_validate_inverted_dates():
    period = Period(PeriodType.CUSTOM, date(2025, 2, 1), date(2025, 1, 1))
    assert validate(period).errors == ["start_date must be before end_date"]


def test_validate_discrete_needs_slots():
    period = Period(PeriodType.DISCRETE, date(2025, 1, 1), date(2025, 1, 14))
    assert validate(period).errors == ["slot_ids is required for DISCRETE periods"]


def test_validate_slot_id_format():
    errors = validate_slot_ids(["2025-02", "25-2", "2025-002"])
    assert errors == [
        "Invalid slot id: 25-2. Use format YYYY-NN (e.g. 2025-02)",
        "Invalid slot id: 2025-002. Use format YYYY-NN (e.g. 2025-02)",
    ]


def test_format_period_labels():
    discrete = Period(PeriodType.DISCRETE, date(2025, 1, 1), date(2025, 1, 28), ("2025-02", "2025-04"))
    custom = Period(PeriodType.CUSTOM, date(2025, 1, 1), date(2025, 1, 14))
    assert format_period(discrete) == "Bi-weekly: 2025-02, 2025-04"
    assert format_period(custom) == "Custom: 01/01/2025 - 14/01/2025"
    assert format_period(None) == "Undefined period"


def test_legacy_view():
    period = Period(PeriodType.DISCRETE, date(2025, 1, 1), date(2025, 1, 14), ("2025-02",))
    assert period.to_legacy_dict() == {
        "data_inicio": date(2025, 1, 1),
        "data_fim": date(2025, 1, 14),
        "bi_week_ids": ["2025-02"],
    }
