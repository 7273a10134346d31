"""
Identifier allocation tests.

Covers ranges and formats of both identifier kinds, redraws on collision and
the optional attempt cap.
"""

import re
import pytest
from decimal import Decimal

from shipment_backend.app.core.exceptions import IdentifierExhaustedError
from shipment_backend.app.models.enums import UserType, AccountStatus
from shipment_backend.app.models.shipment import Shipment
from shipment_backend.app.models.user import User
from shipment_backend.app.services import id_generator
from shipment_backend.app.services.id_generator import (
    USER_ID,
    SHIPMENT_ID,
    generate_candidate,
    allocate_identifier,
    is_taken,
    insert_with_identifier,
)


def _shipment(shipment_id):
    return Shipment(
        id=shipment_id,
        material_name="Cement",
        detail="50kg bags",
        quantity=1,
        price_per_unit=Decimal("10.00"),
        total_price=Decimal("10.00"),
    )


def test_user_candidates_stay_in_range():
    for _ in range(200):
        value = generate_candidate(USER_ID)
        assert isinstance(value, int)
        assert 1000 <= value <= 9999


def test_shipment_candidates_match_format():
    for _ in range(200):
        value = generate_candidate(SHIPMENT_ID)
        assert re.fullmatch(r"SHP\d{6}", value)
        assert 100000 <= int(value[3:]) <= 999999


def test_contains_checks_prefix_and_range():
    assert USER_ID.contains(1000)
    assert USER_ID.contains(9999)
    assert not USER_ID.contains(999)
    assert not USER_ID.contains(10000)
    
    assert SHIPMENT_ID.contains("SHP100000")
    assert not SHIPMENT_ID.contains("SHP099999")
    assert not SHIPMENT_ID.contains("XYZ123456")
    assert not SHIPMENT_ID.contains("SHP12a456")


async def test_is_taken_reflects_stored_rows(db_session):
    db_session.add(_shipment("SHP123456"))
    await db_session.commit()
    
    assert await is_taken(db_session, SHIPMENT_ID, "SHP123456")
    assert not await is_taken(db_session, SHIPMENT_ID, "SHP654321")


async def test_allocate_redraws_taken_candidates(db_session, mocker):
    db_session.add(_shipment("SHP123456"))
    await db_session.commit()
    
    randint = mocker.patch.object(id_generator.random, "randint", side_effect=[123456, 123456, 777777])
    
    value = await allocate_identifier(db_session, SHIPMENT_ID)
    
    assert value == "SHP777777"
    assert randint.call_count == 3


async def test_allocate_stops_at_attempt_cap(db_session, mocker):
    db_session.add(_shipment("SHP123456"))
    await db_session.commit()
    
    mocker.patch.object(id_generator.random, "randint", return_value=123456)
    
    with pytest.raises(IdentifierExhaustedError) as exc_info:
        await allocate_identifier(db_session, SHIPMENT_ID, max_attempts=3)
    
    assert exc_info.value.status_code == 503
    assert exc_info.value.details == {"kind": "shipment", "attempts": 3}


async def test_cap_can_come_from_settings(db_session, mocker, monkeypatch):
    monkeypatch.setattr(id_generator.settings, "id_allocation_max_attempts", 2)
    mocker.patch.object(id_generator, "is_taken", return_value=True)
    
    with pytest.raises(IdentifierExhaustedError) as exc_info:
        await allocate_identifier(db_session, USER_ID)
    
    assert exc_info.value.details["attempts"] == 2


async def test_inserted_user_ids_are_distinct(db_session):
    seen = set()
    for n in range(25):
        user = await insert_with_identifier(db_session, USER_ID, lambda code, n=n: User(
            user_id=code,
            name=f"User {n}",
            email=f"user{n}@mail.com",
            phone="9876543210",
            hashed_password="x",
            type=UserType.CLIENT,
            status=AccountStatus.APPROVED,
        ))
        assert user.user_id not in seen
        seen.add(user.user_id)
    
    assert all(1000 <= value <= 9999 for value in seen)


async def test_inserted_shipment_ids_are_distinct(db_session):
    seen = set()
    for _ in range(25):
        shipment = await insert_with_identifier(db_session, SHIPMENT_ID, _shipment)
        assert re.fullmatch(r"SHP\d{6}", shipment.id)
        assert 100000 <= int(shipment.id[3:]) <= 999999
        assert shipment.id not in seen
        seen.add(shipment.id)
    
    assert len(seen) == 25


async def test_repeated_shipment_draw_is_redrawn_on_insert(db_session, mocker):
    mocker.patch.object(id_generator.random, "randint", side_effect=[424242, 424242, 515151])
    
    first = await insert_with_identifier(db_session, SHIPMENT_ID, _shipment)
    second = await insert_with_identifier(db_session, SHIPMENT_ID, _shipment)
    
    assert first.id == "SHP424242"
    assert second.id == "SHP515151"
