"""Tests du calendrier bi-semaines / Bi-week calendar tests."""

from datetime import date, timedelta

import pytest
from sqlalchemy import select

from billboards.exceptions import ConflictError, NotFoundError, ValidationError
from billboards.models.bi_week import BiWeek
from billboards.models.period import PeriodType
from billboards.models.rental import Rental, RentalKind
from billboards.services.calendar_generator import CalendarGenerator
from tests.conftest import CLIENT_ID, COMPANY_ID


def test_generate_26_contiguous_slots():
    slots = CalendarGenerator.generate(2025)
    assert len(slots) == 26
    assert [s.number for s in slots] == list(range(2, 53, 2))
    assert slots[0].id == "2025-02"
    assert slots[-1].id == "2025-52"
    assert slots[0].start_date == date(2025, 1, 1)
    for slot in slots:
        assert (slot.end_date - slot.start_date).days + 1 == 14
    for current, following in zip(slots, slots[1:]):
        assert following.start_date == current.end_date + timedelta(days=1)


def test_generate_with_custom_start():
    slots = CalendarGenerator.generate(2025, date(2024, 12, 30))
    assert slots[0].start_date == date(2024, 12, 30)
    assert slots[0].end_date == date(2025, 1, 12)


@pytest.mark.asyncio
async def test_generate_calendar_persists(db):
    summary = await CalendarGenerator(db).generate_calendar(2025)
    assert (summary.created, summary.updated, summary.skipped, summary.total) == (26, 0, 0, 26)
    assert await CalendarGenerator(db).available_years() == [2025]


@pytest.mark.asyncio
async def test_generate_calendar_is_idempotent(db):
    calendar = CalendarGenerator(db)
    await calendar.generate_calendar(2025)
    summary = await calendar.generate_calendar(2025)
    assert (summary.created, summary.skipped) == (0, 26)
    assert len(await calendar.list_slots(year=2025)) == 26


@pytest.mark.asyncio
async def test_overwrite_updates_existing(db):
    calendar = CalendarGenerator(db)
    await calendar.generate_calendar(2025)
    summary = await calendar.generate_calendar(2025, date(2025, 1, 6), overwrite=True)
    assert summary.updated == 26
    slot = await calendar.get_slot("2025-02")
    assert slot.start_date == date(2025, 1, 6)


@pytest.mark.asyncio
async def test_overwrite_keeps_referenced_slot_dates(db, make_billboard):
    calendar = CalendarGenerator(db)
    await calendar.generate_calendar(2025)
    billboard = await make_billboard()
    db.add(Rental(
        billboard_id=billboard.id, client_id=CLIENT_ID, company_id=COMPANY_ID, kind=RentalKind.MANUAL,
        period_type=PeriodType.DISCRETE, start_date=date(2025, 1, 1), end_date=date(2025, 1, 14),
        slot_ids=["2025-02"],
    ))
    await db.commit()

    summary = await calendar.generate_calendar(2025, date(2025, 1, 6), overwrite=True)
    assert summary.updated == 25
    assert summary.skipped == 1
    slot = await calendar.get_slot("2025-02")
    assert slot.start_date == date(2025, 1, 1)


@pytest.mark.asyncio
async def test_year_out_of_range(db):
    with pytest.raises(ValidationError):
        await CalendarGenerator(db).generate_calendar(1999)


@pytest.mark.asyncio
async def test_find_containing(db, calendar_2025):
    calendar = CalendarGenerator(db)
    slot = await calendar.find_containing(date(2025, 1, 20))
    assert slot.id == "2025-04"
    assert await calendar.find_containing(date(2030, 1, 1)) is None


@pytest.mark.asyncio
async def test_inactive_slot_is_not_found_by_date(db, calendar_2025):
    calendar = CalendarGenerator(db)
    await calendar.update_slot("2025-04", {"active": False})
    await db.commit()
    assert await calendar.find_containing(date(2025, 1, 20)) is None


@pytest.mark.asyncio
async def test_create_slot_rejects_bad_span(db):
    with pytest.raises(ValidationError):
        await CalendarGenerator(db).create_slot({
            "id": "2026-02", "year": 2026, "number": 2,
            "start_date": date(2026, 1, 1), "end_date": date(2026, 1, 30),
        })


@pytest.mark.asyncio
async def test_create_slot_rejects_mismatched_id(db):
    with pytest.raises(ValidationError) as exc:
        await CalendarGenerator(db).create_slot({
            "id": "2026-04", "year": 2026, "number": 2,
            "start_date": date(2026, 1, 1), "end_date": date(2026, 1, 14),
        })
    assert "does not match" in exc.value.errors[0]


@pytest.mark.asyncio
async def test_create_duplicate_slot(db, calendar_2025):
    with pytest.raises(ConflictError):
        await CalendarGenerator(db).create_slot({
            "id": "2025-02", "year": 2025, "number": 2,
            "start_date": date(2025, 1, 1), "end_date": date(2025, 1, 14),
        })


@pytest.mark.asyncio
async def test_referenced_slot_dates_are_frozen(db, calendar_2025, make_billboard):
    billboard = await make_billboard()
    db.add(Rental(
        billboard_id=billboard.id, client_id=CLIENT_ID, company_id=COMPANY_ID, kind=RentalKind.MANUAL,
        period_type=PeriodType.DISCRETE, start_date=date(2025, 1, 1), end_date=date(2025, 1, 14),
        slot_ids=["2025-02"],
    ))
    await db.commit()
    calendar = CalendarGenerator(db)

    with pytest.raises(ConflictError):
        await calendar.update_slot("2025-02", {"start_date": date(2025, 1, 2)})
    await db.rollback()
    with pytest.raises(ConflictError):
        await calendar.delete_slot("2025-02")

    slot = await calendar.update_slot("2025-02", {"description": "Carnaval"})
    assert slot.description == "Carnaval"


@pytest.mark.asyncio
async def test_delete_unreferenced_slot(db, calendar_2025):
    calendar = CalendarGenerator(db)
    await calendar.delete_slot("2025-52")
    await db.commit()
    with pytest.raises(NotFoundError):
        await calendar.get_slot("2025-52")


@pytest.mark.asyncio
async def test_manual_corruption_is_rejected(db):
    db.add(BiWeek(
        id="2026-02", year=2026, number=2, start_date=date(2026, 1, 1), end_date=date(2026, 3, 1),
    ))
    with pytest.raises(ValidationError):
        await db.flush()
    await db.rollback()
    result = await db.execute(select(BiWeek).where(BiWeek.id == "2026-02"))
    assert result.scalar_one_or_none() is None
