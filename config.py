"""
配置加载

优先级（高 -> 低）：环境变量 > config.yaml > 默认值

Copyright (c) 2025 Miyang Tech (Zhuhai Hengqin) Co., Ltd.
MIT License
"""

import os
from typing import Optional, Mapping, Any

import yaml
from dotenv import load_dotenv

from models import ServerConfig


DEFAULT_CONFIG_PATH = os.path.join(os.path.dirname(os.path.abspath(__file__)), "config.yaml")


class ConfigError(Exception):
    """配置文件无法解析或取值类型错误"""


def _clean(value: Any) -> Optional[str]:
    """去掉首尾空白，空字符串视为未设置"""
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def _read_yaml(config_path: str) -> dict:
    if not os.path.exists(config_path):
        return {}
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"无法解析配置文件 {config_path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"配置文件 {config_path} 顶层必须是映射")
    return data


def _section(data: dict, name: str) -> dict:
    section = data.get(name) or {}
    if not isinstance(section, dict):
        raise ConfigError(f"配置项 '{name}' 必须是映射")
    return section


def load_config(
    config_path: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None
) -> ServerConfig:
    """
    加载服务配置

    Args:
        config_path: YAML 配置文件路径，默认为代码目录下的 config.yaml
        environ: 环境变量映射，默认读取 .env 后的 os.environ

    Returns:
        不可变的 ServerConfig
    """
    if environ is None:
        load_dotenv()
        environ = os.environ

    data = _read_yaml(config_path or DEFAULT_CONFIG_PATH)

    server = _section(data, "server")
    auth = _section(data, "auth")
    time_conf = _section(data, "time")
    mcp_conf = _section(data, "mcp")
    storage = _section(data, "storage")
    log_conf = _section(data, "logging")

    defaults = ServerConfig()

    try:
        port = int(_clean(environ.get("MCP_PORT")) or server.get("port", defaults.port))
        max_duration = float(mcp_conf.get("max_duration", defaults.max_duration))
        max_log_records = int(log_conf.get("max_records", defaults.max_log_records))
    except (TypeError, ValueError) as e:
        raise ConfigError(f"配置取值类型错误: {e}") from e

    if max_duration <= 0:
        raise ConfigError("mcp.max_duration 必须大于 0")

    return ServerConfig(
        name=_clean(server.get("name")) or defaults.name,
        host=_clean(environ.get("MCP_HOST")) or _clean(server.get("host")) or defaults.host,
        port=port,
        base_path=_clean(server.get("base_path")) or defaults.base_path,
        auth_token=_clean(environ.get("MCP_AUTH_TOKEN")) or _clean(auth.get("token")),
        default_timezone=_clean(environ.get("DEFAULT_TIMEZONE")) or _clean(time_conf.get("default_timezone")),
        environment=_clean(environ.get("ENVIRONMENT")) or defaults.environment,
        max_duration=max_duration,
        stateless=bool(mcp_conf.get("stateless", defaults.stateless)),
        json_response=bool(mcp_conf.get("json_response", defaults.json_response)),
        data_dir=_clean(storage.get("data_dir")) or defaults.data_dir,
        request_log=bool(log_conf.get("request_log", defaults.request_log)),
        max_log_records=max_log_records,
    )
