"""
数据模型定义

时间查询 MCP 服务使用的不可变数据对象

Copyright (c) 2025 Miyang Tech (Zhuhai Hengqin) Co., Ltd.
MIT License
"""

from dataclasses import dataclass, asdict
from typing import Optional, Dict


# 硬编码的兜底时区（印度）
DEFAULT_TIMEZONE = "Asia/Kolkata"


@dataclass(frozen=True)
class DateTimeSnapshot:
    """某一时刻在某个时区下的多格式快照"""
    iso8601: str          # UTC，毫秒精度，Z 结尾
    formatted: str        # Monday, October 19, 2026 at 02:05:09 PM GMT+5:30
    date: str             # Monday, October 19, 2026
    time: str             # 02:05:09 PM GMT+5:30
    timezone: str
    day_of_week: str
    unix_timestamp: int

    def to_dict(self) -> Dict:
        return asdict(self)


@dataclass(frozen=True)
class ServerConfig:
    """服务配置（启动时构建一次，之后只读）"""
    name: str = "Time Aware MCP Server"
    host: str = "0.0.0.0"
    port: int = 8633
    base_path: str = "/api"

    # 认证：为空时不校验
    auth_token: Optional[str] = None

    # 默认时区：为空或无效时使用 DEFAULT_TIMEZONE
    default_timezone: Optional[str] = None

    # MCP 传输
    environment: str = "production"
    max_duration: float = 60
    stateless: bool = False
    json_response: bool = True

    # 请求日志
    data_dir: str = "./data"
    request_log: bool = True
    max_log_records: int = 1000

    @property
    def endpoint_path(self) -> str:
        return self.base_path.rstrip("/") + "/mcp"

    @property
    def verbose_logs(self) -> bool:
        return self.environment == "development"

    @property
    def request_log_path(self) -> str:
        return self.data_dir.rstrip("/") + "/api_logs.db"
