"""Tests des modèles / Model tests."""

from datetime import date

from billboards.models.bi_week import BiWeek
from billboards.models.billboard import Billboard
from billboards.models.period import PeriodType
from billboards.models.proposal import ProposalStatus
from billboards.models.rental import Rental, RentalKind, RentalStatus


def test_bi_week_repr_and_span():
    slot = BiWeek(id="2025-02", year=2025, number=2, start_date=date(2025, 1, 1), end_date=date(2025, 1, 14))
    assert "2025-02" in repr(slot)
    assert slot.span_days == 14
    assert slot.contains(date(2025, 1, 14))
    assert not slot.contains(date(2025, 1, 15))


def test_billboard_repr():
    assert "P-001" in repr(Billboard(code="P-001", company_id=1))


def test_rental_period_property():
    rental = Rental(
        billboard_id=1, client_id=10, company_id=1, period_type=PeriodType.DISCRETE,
        start_date=date(2025, 1, 1), end_date=date(2025, 1, 14), slot_ids=["2025-02"],
    )
    period = rental.period
    assert period.slot_ids == ("2025-02",)
    assert period.duration_days == 14


def test_enums():
    assert PeriodType.CUSTOM.value == "CUSTOM"
    assert RentalKind.FROM_PROPOSAL.value == "FROM_PROPOSAL"
    assert RentalStatus.FINISHED.value == "FINISHED"
    assert ProposalStatus.EXPIRED.value == "EXPIRED"
