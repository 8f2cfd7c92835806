"""
当前时间快照模块

所有字段都由同一个时刻计算，避免字段之间出现时间偏差。
格式化固定使用 en-US 习惯（星期、月份名称来自常量表，不受进程 locale 影响），
只有时区可变。

Copyright (c) 2025 Miyang Tech (Zhuhai Hengqin) Co., Ltd.
MIT License
"""

from datetime import datetime, timezone, timedelta
from typing import Callable, Optional
from zoneinfo import ZoneInfo

from models import DateTimeSnapshot
from .timezone_resolver import TimezoneResolver


WEEKDAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")

MONTHS = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

# en-US 下保留字母缩写的美国时区
US_ABBREVIATIONS = frozenset({
    "EST", "EDT", "CST", "CDT", "MST", "MDT", "PST", "PDT",
    "AKST", "AKDT", "HST", "HDT",
})

US_ZONE_PREFIXES = ("America/", "US/", "Pacific/Honolulu")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def zone_label(local: datetime) -> str:
    """
    时区简称，与 en-US 习惯一致

    美国时区用字母缩写（EDT、PST），UTC 显示 UTC，
    其余时区显示偏移（GMT+5:30、GMT+9、GMT）
    """
    name = local.tzname() or ""
    if name == "UTC":
        return name
    key = getattr(local.tzinfo, "key", "") or ""
    if name in US_ABBREVIATIONS and key.startswith(US_ZONE_PREFIXES):
        return name

    minutes = int(local.utcoffset() // timedelta(minutes=1))
    if minutes == 0:
        return "GMT"
    sign = "+" if minutes > 0 else "-"
    hours, minutes = divmod(abs(minutes), 60)
    if minutes:
        return f"GMT{sign}{hours}:{minutes:02d}"
    return f"GMT{sign}{hours}"


def format_date(local: datetime) -> str:
    return f"{WEEKDAYS[local.weekday()]}, {MONTHS[local.month - 1]} {local.day}, {local.year}"


def format_time(local: datetime) -> str:
    hour = local.hour % 12 or 12
    meridiem = "AM" if local.hour < 12 else "PM"
    return f"{hour:02d}:{local.minute:02d}:{local.second:02d} {meridiem} {zone_label(local)}"


def format_iso8601(instant: datetime) -> str:
    """UTC、毫秒精度、Z 结尾，与时区无关且可排序"""
    utc = instant.astimezone(timezone.utc)
    return f"{utc:%Y-%m-%dT%H:%M:%S}.{utc.microsecond // 1000:03d}Z"


def epoch_millis(instant: datetime) -> int:
    return (instant - EPOCH) // timedelta(milliseconds=1)


class DateTimeSnapshotBuilder:
    """时间快照构建器"""

    def __init__(
        self,
        resolver: TimezoneResolver,
        clock: Callable[[], datetime] = utc_now
    ):
        self.resolver = resolver
        self.clock = clock

    def _now(self) -> datetime:
        instant = self.clock()
        if instant.tzinfo is None:
            instant = instant.replace(tzinfo=timezone.utc)
        return instant

    def snapshot(self, timezone_name: Optional[str] = None) -> DateTimeSnapshot:
        """
        构建当前时刻的快照

        Args:
            timezone_name: 请求的时区，None 时按默认时区解析。
                           调用方负责保证传入的时区有效

        Returns:
            DateTimeSnapshot
        """
        instant = self._now()
        tz = self.resolver.resolve(timezone_name)
        local = instant.astimezone(ZoneInfo(tz))

        date_str = format_date(local)
        time_str = format_time(local)

        return DateTimeSnapshot(
            iso8601=format_iso8601(instant),
            formatted=f"{date_str} at {time_str}",
            date=date_str,
            time=time_str,
            timezone=tz,
            day_of_week=WEEKDAYS[local.weekday()],
            unix_timestamp=epoch_millis(instant) // 1000,
        )
