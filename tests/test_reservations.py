"""Tests du détecteur de conflits / Reservation conflict detector tests."""

import asyncio
from datetime import date

import pytest
from sqlalchemy import func, select

from billboards.exceptions import ConflictError, NotFoundError
from billboards.models.audit import AuditLog
from billboards.models.billboard import Billboard
from billboards.models.period import PeriodType
from billboards.models.rental import Rental, RentalKind, RentalStatus
from billboards.services.notifications import RENTAL_CANCELLED, RENTAL_CREATED, RentalEventBus
from billboards.services.reservation_service import ReservationService
from tests.conftest import CLIENT_ID, COMPANY_ID, OTHER_COMPANY_ID


def custom(start: str, end: str) -> dict:
    return {"period_type": "CUSTOM", "start_date": start, "end_date": end}


async def count_rentals(session_factory) -> int:
    async with session_factory() as session:
        return await session.scalar(select(func.count(Rental.id)))


@pytest.mark.asyncio
async def test_create_discrete_rental(db, calendar_2025, make_billboard):
    billboard = await make_billboard()
    rental = await ReservationService(db).create_rental(
        billboard.id, CLIENT_ID, COMPANY_ID, {"slot_ids": ["2025-02", "2025-04"]}
    )
    assert rental.id is not None
    assert rental.kind == RentalKind.MANUAL
    assert rental.status == RentalStatus.ACTIVE
    assert rental.period_type == PeriodType.DISCRETE
    assert (rental.start_date, rental.end_date) == (date(2025, 1, 1), date(2025, 1, 28))
    assert rental.slot_ids == ["2025-02", "2025-04"]

    audit = await db.scalar(select(AuditLog).where(AuditLog.entity_id == rental.id))
    assert audit.action == "CREATE"


@pytest.mark.asyncio
async def test_booking_never_touches_maintenance_flag(db, make_billboard, session_factory):
    billboard = await make_billboard(available=False)
    await ReservationService(db).create_rental(billboard.id, CLIENT_ID, COMPANY_ID, custom("2025-01-01", "2025-01-15"))
    async with session_factory() as session:
        assert (await session.get(Billboard, billboard.id)).available is False


@pytest.mark.asyncio
async def test_touching_boundaries_do_not_conflict(db, make_billboard):
    billboard = await make_billboard()
    service = ReservationService(db)
    await service.create_rental(billboard.id, CLIENT_ID, COMPANY_ID, custom("2025-01-01", "2025-01-15"))
    second = await service.create_rental(billboard.id, CLIENT_ID, COMPANY_ID, custom("2025-01-15", "2025-01-20"))
    assert second.start_date == date(2025, 1, 15)


@pytest.mark.asyncio
async def test_overlap_conflict_names_existing_rental(db, make_billboard, session_factory):
    billboard = await make_billboard()
    service = ReservationService(db)
    first = await service.create_rental(billboard.id, CLIENT_ID, COMPANY_ID, custom("2025-01-01", "2025-01-15"))

    with pytest.raises(ConflictError) as exc:
        await service.create_rental(billboard.id, 99, COMPANY_ID, custom("2025-01-10", "2025-01-20"))

    conflicting = exc.value.details["conflicting_rental"]
    assert conflicting["id"] == first.id
    assert conflicting["billboard_id"] == billboard.id
    assert (conflicting["start_date"], conflicting["end_date"]) == ("2025-01-01", "2025-01-15")
    assert f"Billboard {billboard.id}" in exc.value.message
    assert await count_rentals(session_factory) == 1


@pytest.mark.asyncio
async def test_other_billboard_same_interval(db, make_billboard):
    first = await make_billboard("P-001")
    second = await make_billboard("P-002")
    service = ReservationService(db)
    await service.create_rental(first.id, CLIENT_ID, COMPANY_ID, custom("2025-01-01", "2025-01-15"))
    rental = await service.create_rental(second.id, CLIENT_ID, COMPANY_ID, custom("2025-01-01", "2025-01-15"))
    assert rental.billboard_id == second.id


@pytest.mark.asyncio
async def test_finished_rental_does_not_block(db, make_billboard):
    billboard = await make_billboard()
    service = ReservationService(db)
    old = await service.create_rental(billboard.id, CLIENT_ID, COMPANY_ID, custom("2025-01-01", "2025-01-15"))
    old.status = RentalStatus.FINISHED
    await db.commit()
    await service.create_rental(billboard.id, CLIENT_ID, COMPANY_ID, custom("2025-01-05", "2025-01-10"))


@pytest.mark.asyncio
async def test_billboard_of_other_company(db, make_billboard):
    billboard = await make_billboard(company_id=OTHER_COMPANY_ID)
    with pytest.raises(NotFoundError):
        await ReservationService(db).create_rental(
            billboard.id, CLIENT_ID, COMPANY_ID, custom("2025-01-01", "2025-01-15")
        )


@pytest.mark.asyncio
async def test_resolution_error_propagates_without_insert(db, calendar_2025, make_billboard, session_factory):
    billboard = await make_billboard()
    with pytest.raises(NotFoundError):
        await ReservationService(db).create_rental(billboard.id, CLIENT_ID, COMPANY_ID, {"slot_ids": ["2040-02"]})
    assert await count_rentals(session_factory) == 0


@pytest.mark.asyncio
async def test_concurrent_overlapping_bookings(make_billboard, session_factory):
    billboard = await make_billboard()

    async def book(start, end):
        async with session_factory() as session:
            return await ReservationService(session).create_rental(
                billboard.id, CLIENT_ID, COMPANY_ID, custom(start, end)
            )

    results = await asyncio.gather(
        book("2025-01-01", "2025-01-15"),
        book("2025-01-10", "2025-01-20"),
        return_exceptions=True,
    )
    successes = [r for r in results if isinstance(r, Rental)]
    conflicts = [r for r in results if isinstance(r, ConflictError)]
    assert len(successes) == 1
    assert len(conflicts) == 1
    assert await count_rentals(session_factory) == 1


@pytest.mark.asyncio
async def test_concurrent_bookings_on_different_billboards(make_billboard, session_factory):
    first = await make_billboard("P-001")
    second = await make_billboard("P-002")

    async def book(billboard_id):
        async with session_factory() as session:
            return await ReservationService(session).create_rental(
                billboard_id, CLIENT_ID, COMPANY_ID, custom("2025-01-01", "2025-01-15")
            )

    results = await asyncio.gather(book(first.id), book(second.id))
    assert {r.billboard_id for r in results} == {first.id, second.id}


@pytest.mark.asyncio
async def test_cancel_rental(db, make_billboard, session_factory):
    billboard = await make_billboard()
    service = ReservationService(db)
    rental = await service.create_rental(billboard.id, CLIENT_ID, COMPANY_ID, custom("2025-01-01", "2025-01-15"))

    await service.cancel_rental(rental.id, COMPANY_ID)
    assert await count_rentals(session_factory) == 0
    # L'intervalle est libre a nouveau / The interval is free again
    await service.create_rental(billboard.id, CLIENT_ID, COMPANY_ID, custom("2025-01-01", "2025-01-15"))


@pytest.mark.asyncio
async def test_cancel_rental_scoped_to_company(db, make_billboard):
    billboard = await make_billboard()
    service = ReservationService(db)
    rental = await service.create_rental(billboard.id, CLIENT_ID, COMPANY_ID, custom("2025-01-01", "2025-01-15"))
    with pytest.raises(NotFoundError):
        await service.cancel_rental(rental.id, OTHER_COMPANY_ID)
    with pytest.raises(NotFoundError):
        await service.cancel_rental(9999, COMPANY_ID)


@pytest.mark.asyncio
async def test_events_published_after_commit(db, make_billboard):
    billboard = await make_billboard()
    bus = RentalEventBus()
    received = []

    async def listener(event, payload):
        received.append((event, payload["rental_id"]))

    bus.subscribe(RENTAL_CREATED, listener)
    bus.subscribe(RENTAL_CANCELLED, listener)
    service = ReservationService(db, bus=bus)
    rental = await service.create_rental(billboard.id, CLIENT_ID, COMPANY_ID, custom("2025-01-01", "2025-01-15"))
    await service.cancel_rental(rental.id, COMPANY_ID)
    assert received == [(RENTAL_CREATED, rental.id), (RENTAL_CANCELLED, rental.id)]


@pytest.mark.asyncio
async def test_failing_listener_keeps_booking(db, make_billboard, session_factory):
    billboard = await make_billboard()
    bus = RentalEventBus()

    def broken(event, payload):
        raise RuntimeError("webhook down")

    bus.subscribe(RENTAL_CREATED, broken)
    await ReservationService(db, bus=bus).create_rental(
        billboard.id, CLIENT_ID, COMPANY_ID, custom("2025-01-01", "2025-01-15")
    )
    assert await count_rentals(session_factory) == 1


@pytest.mark.asyncio
async def test_live_occupancy(db, make_billboard):
    billboard = await make_billboard()
    service = ReservationService(db)
    await service.create_rental(billboard.id, CLIENT_ID, COMPANY_ID, custom("2025-01-01", "2025-01-15"))
    assert await service.is_occupied(billboard.id, date(2025, 1, 10))
    assert await service.is_occupied(billboard.id, date(2025, 1, 14))
    # Fin CUSTOM exclusive / CUSTOM end is exclusive
    assert not await service.is_occupied(billboard.id, date(2025, 1, 15))


@pytest.mark.asyncio
async def test_available_billboards_for_interval(db, make_billboard):
    booked = await make_billboard("P-001")
    free = await make_billboard("P-002")
    await make_billboard("P-003", available=False)
    service = ReservationService(db)
    await service.create_rental(booked.id, CLIENT_ID, COMPANY_ID, custom("2025-01-01", "2025-01-15"))

    available = await service.available_billboards(COMPANY_ID, date(2025, 1, 5), date(2025, 1, 10))
    assert [b.id for b in available] == [free.id]
    overlapping = await service.rentals_overlapping(COMPANY_ID, date(2025, 1, 5), date(2025, 1, 10))
    assert [r.billboard_id for r in overlapping] == [booked.id]


@pytest.mark.asyncio
async def test_custom_booking_on_slot_last_day_conflicts(db, calendar_2025, make_billboard):
    billboard = await make_billboard()
    service = ReservationService(db)
    slot_rental = await service.create_rental(billboard.id, CLIENT_ID, COMPANY_ID, {"slot_ids": ["2025-02"]})
    assert slot_rental.end_date == date(2025, 1, 14)
    assert slot_rental.end_exclusive == date(2025, 1, 15)

    with pytest.raises(ConflictError) as exc:
        await service.create_rental(billboard.id, 99, COMPANY_ID, custom("2025-01-14", "2025-01-20"))
    assert exc.value.details["conflicting_rental"]["id"] == slot_rental.id

    after = await service.create_rental(billboard.id, 99, COMPANY_ID, custom("2025-01-15", "2025-01-20"))
    assert await service.is_occupied(billboard.id, date(2025, 1, 14))
    assert [r.id for r in await service.rentals_overlapping(COMPANY_ID, date(2025, 1, 14), date(2025, 1, 15))] == [
        slot_rental.id
    ]
    assert after.start_date == date(2025, 1, 15)


@pytest.mark.asyncio
async def test_custom_booking_ending_on_slot_start(db, calendar_2025, make_billboard):
    billboard = await make_billboard()
    service = ReservationService(db)
    await service.create_rental(billboard.id, CLIENT_ID, COMPANY_ID, {"slot_ids": ["2025-04"]})
    before = await service.create_rental(billboard.id, 99, COMPANY_ID, custom("2025-01-10", "2025-01-15"))
    assert before.end_exclusive == date(2025, 1, 15)
