"""
时间工具模块

提供时区解析、当前时间快照和 get_current_datetime 工具

Copyright (c) 2025 Miyang Tech (Zhuhai Hengqin) Co., Ltd.
MIT License
"""

from .timezone_resolver import TimezoneResolver, TimezoneProbe, ZoneInfoProbe, StaticTimezoneProbe
from .datetime_snapshot import DateTimeSnapshotBuilder
from .datetime_tool import DateTimeTool, ToolResult, TOOL_NAME

__all__ = [
    "TimezoneResolver",
    "TimezoneProbe",
    "ZoneInfoProbe",
    "StaticTimezoneProbe",
    "DateTimeSnapshotBuilder",
    "DateTimeTool",
    "ToolResult",
    "TOOL_NAME",
]
