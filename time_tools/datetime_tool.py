"""
get_current_datetime 工具

时区无效时不报错，改用默认时区并在结果末尾附加提示，
保证调用方（AI 助手）在对话中途不会因为工具报错而中断。

Copyright (c) 2025 Miyang Tech (Zhuhai Hengqin) Co., Ltd.
MIT License
"""

import logging
from dataclasses import dataclass
from typing import Optional

from models import DateTimeSnapshot
from .datetime_snapshot import DateTimeSnapshotBuilder
from .timezone_resolver import TimezoneResolver

logger = logging.getLogger(__name__)


# ==================== 工具元数据（对外契约） ====================

TOOL_NAME = "get_current_datetime"

TOOL_TITLE = "Get Current Date and Time"

TOOL_DESCRIPTION = (
    "Returns the exact current date and time. "
    "IMPORTANT: Call this tool at the start of conversations and when the user's message may benefit from temporal context. "
    "Include the returned date and time in your response so the user knows exactly when you are responding. "
    "This keeps the conversation time-aware across all messages."
)

TIMEZONE_FIELD_DESCRIPTION = (
    "Optional IANA timezone (e.g. 'America/New_York', 'Europe/London'). "
    "Omit to use DEFAULT_TIMEZONE env (if set) or Asia/Kolkata (India)."
)


@dataclass(frozen=True)
class ToolResult:
    """工具调用结果"""
    text: str
    snapshot: DateTimeSnapshot
    fallback_used: bool = False
    rejected_timezone: Optional[str] = None


def normalize_timezone(timezone_name: Optional[str]) -> Optional[str]:
    """空字符串或纯空白视为未传"""
    if timezone_name is None:
        return None
    timezone_name = timezone_name.strip()
    return timezone_name or None


def render(snapshot: DateTimeSnapshot, rejected_timezone: Optional[str] = None) -> str:
    lines = [
        "**Current Date & Time**",
        f"- **Full**: {snapshot.formatted}",
        f"- **ISO 8601**: {snapshot.iso8601}",
        f"- **Date**: {snapshot.date}",
        f"- **Time**: {snapshot.time}",
        f"- **Timezone**: {snapshot.timezone}",
        f"- **Day of Week**: {snapshot.day_of_week}",
        f"- **Unix Timestamp**: {snapshot.unix_timestamp}",
    ]
    text = "\n".join(lines)

    if rejected_timezone:
        text += f'\n\n_(Invalid timezone "{rejected_timezone}" – using configured/default timezone instead)_'

    return text


class DateTimeTool:
    """当前日期时间工具"""

    def __init__(
        self,
        resolver: TimezoneResolver,
        builder: Optional[DateTimeSnapshotBuilder] = None
    ):
        self.resolver = resolver
        self.builder = builder or DateTimeSnapshotBuilder(resolver)

    def invoke(self, timezone: Optional[str] = None) -> ToolResult:
        """
        获取当前日期时间

        Args:
            timezone: 可选的 IANA 时区，如 "America/New_York"

        Returns:
            ToolResult，text 为 Markdown 格式的文本
        """
        requested = normalize_timezone(timezone)

        if requested and not self.resolver.is_valid(requested):
            snapshot = self.builder.snapshot(None)
            logger.warning(f"无效时区 {requested!r}，改用 {snapshot.timezone}")
            return ToolResult(
                text=render(snapshot, rejected_timezone=requested),
                snapshot=snapshot,
                fallback_used=True,
                rejected_timezone=requested,
            )

        snapshot = self.builder.snapshot(requested)
        logger.info(f"[Tool] {TOOL_NAME} 时区: {snapshot.timezone}")
        return ToolResult(text=render(snapshot), snapshot=snapshot)
