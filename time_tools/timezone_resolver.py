"""
时区解析模块

解析顺序：
1. 调用方传入的时区（去除首尾空白后非空即返回，不在这里校验）
2. 配置的默认时区（必须通过有效性检查）
3. 硬编码兜底时区 Asia/Kolkata

时区有效性通过实际构造时区并格式化当前时间来探测，
不依赖静态列表，运行环境支持哪些时区就认哪些。

Copyright (c) 2025 Miyang Tech (Zhuhai Hengqin) Co., Ltd.
MIT License
"""

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Optional, Iterable, FrozenSet
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError, available_timezones

from models import DEFAULT_TIMEZONE


class TimezoneProbe(ABC):
    """时区有效性探测接口"""

    @abstractmethod
    def is_valid(self, tz: str) -> bool:
        ...


class ZoneInfoProbe(TimezoneProbe):
    """尝试用 zoneinfo 构造时区并格式化当前时间，任何失败都视为无效"""

    def is_valid(self, tz: str) -> bool:
        try:
            datetime.now(timezone.utc).astimezone(ZoneInfo(tz)).strftime("%c %Z")
            return True
        except (ZoneInfoNotFoundError, ValueError, OSError, TypeError):
            return False


class StaticTimezoneProbe(TimezoneProbe):
    """按静态 IANA 名称集合判断，适用于需要固定列表的环境"""

    def __init__(self, names: Optional[Iterable[str]] = None):
        self.names: FrozenSet[str] = frozenset(names if names is not None else available_timezones())

    def is_valid(self, tz: str) -> bool:
        return isinstance(tz, str) and tz in self.names


class TimezoneResolver:
    """时区解析器"""

    def __init__(
        self,
        default_timezone: Optional[str] = None,
        probe: Optional[TimezoneProbe] = None,
        fallback: str = DEFAULT_TIMEZONE
    ):
        """
        Args:
            default_timezone: 配置的默认时区（DEFAULT_TIMEZONE 环境变量）
            probe: 有效性探测器，默认 ZoneInfoProbe
            fallback: 兜底时区
        """
        self.default_timezone = default_timezone.strip() if default_timezone else None
        self.probe = probe or ZoneInfoProbe()
        self.fallback = fallback

    def is_valid(self, tz: Optional[str]) -> bool:
        if not tz:
            return False
        return self.probe.is_valid(tz)

    def resolve(self, requested: Optional[str] = None) -> str:
        """返回本次计算使用的时区"""
        if requested and requested.strip():
            return requested.strip()
        if self.default_timezone and self.is_valid(self.default_timezone):
            return self.default_timezone
        return self.fallback
