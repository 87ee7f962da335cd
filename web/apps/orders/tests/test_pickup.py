from datetime import datetime, timedelta, timezone

import pytest

from apps.common.errors import InvalidPickupTime
from apps.orders.pickup import PickupWindow

from conftest import NOW, PICKUP

window = PickupWindow()


def test_slots_cover_opening_hours_on_weekdays():
    slots = window.slots(NOW)

    # Monday to Friday, 42 slots a day (09:00 to 15:50)
    assert len(slots) == 5 * 42
    assert slots[0] == datetime(2026, 10, 19, 9, 0, tzinfo=timezone.utc)
    assert slots[41] == datetime(2026, 10, 19, 15, 50, tzinfo=timezone.utc)
    assert all(s.weekday() < 5 for s in slots)


def test_past_slots_are_not_offered():
    noon = NOW.replace(hour=12, minute=5)
    first = window.slots(noon)[0]
    assert first == datetime(2026, 10, 19, 12, 10, tzinfo=timezone.utc)


def test_weekend_is_skipped():
    friday_evening = datetime(2026, 10, 23, 17, 0, tzinfo=timezone.utc)
    days = {s.date() for s in window.slots(friday_evening)}
    # Sat/Sun skipped; Mon and Tue remain within the 5-day horizon
    assert sorted(d.weekday() for d in days) == [0, 1]


def test_valid_slot():
    assert window.validate(PICKUP, NOW) == PICKUP


@pytest.mark.parametrize(
    "when",
    [
        PICKUP.replace(tzinfo=None),                           # naive
        NOW - timedelta(hours=1),                              # past
        datetime(2026, 10, 24, 10, 0, tzinfo=timezone.utc),    # Saturday
        datetime(2026, 10, 19, 16, 0, tzinfo=timezone.utc),    # closing time
        datetime(2026, 10, 19, 10, 5, tzinfo=timezone.utc),    # off the grid
        datetime(2026, 10, 26, 10, 0, tzinfo=timezone.utc),    # beyond horizon
    ],
)
def test_invalid_slots(when):
    with pytest.raises(InvalidPickupTime):
        window.validate(when, NOW)

