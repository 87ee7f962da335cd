"""Pickup slots offered at checkout.

Students collect orders at the market desk on weekdays, in 10-minute slots
from opening to closing time, up to a few days ahead. ``PickupWindow``
lists the open slots and checks a requested pickup time against them.
"""

from dataclasses import dataclass
from datetime import datetime, time, timedelta, timezone as dt_timezone, tzinfo
from typing import List
from zoneinfo import ZoneInfo

from apps.common.errors import InvalidPickupTime


@dataclass(frozen=True)
class PickupWindow:
    timezone: str = "UTC"
    open_hour: int = 9
    close_hour: int = 16
    slot_minutes: int = 10
    days_ahead: int = 5

    @property
    def tz(self) -> tzinfo:
        if self.timezone.upper() == "UTC":
            return dt_timezone.utc
        return ZoneInfo(self.timezone)

    def slots(self, now: datetime) -> List[datetime]:
        """Every future slot from today through ``days_ahead - 1`` days on."""
        local_now = now.astimezone(self.tz)
        out = []
        for day in range(self.days_ahead):
            date = local_now.date() + timedelta(days=day)
            if date.weekday() >= 5:
                continue
            start = datetime.combine(date, time(self.open_hour), tzinfo=self.tz)
            end = datetime.combine(date, time(self.close_hour), tzinfo=self.tz)
            slot = start
            while slot < end:
                if slot > local_now:
                    out.append(slot)
                slot += timedelta(minutes=self.slot_minutes)
        return out

    def validate(self, when: datetime, now: datetime) -> datetime:
        """Return ``when`` if it is one of the open slots.

        Raises:
            InvalidPickupTime: Naive timestamp, past, weekend, outside
                opening hours, off the slot grid, or beyond the horizon.
        """
        if when.tzinfo is None:
            raise InvalidPickupTime("pickup time must carry a timezone")
        local = when.astimezone(self.tz)
        local_now = now.astimezone(self.tz)
        if local <= local_now:
            raise InvalidPickupTime("pickup time is in the past")
        if (local.date() - local_now.date()).days >= self.days_ahead:
            raise InvalidPickupTime("pickup time is too far ahead")
        if local.weekday() >= 5:
            raise InvalidPickupTime("pickup is only available on weekdays")
        if not time(self.open_hour) <= local.time() < time(self.close_hour):
            raise InvalidPickupTime("pickup time is outside opening hours")
        if local.minute % self.slot_minutes or local.second or local.microsecond:
            raise InvalidPickupTime("pickup time is not on a slot boundary")
        return when
