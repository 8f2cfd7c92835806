"""
认证和请求识别模块

- AccessGuard: 可选的共享密钥认证，支持 Bearer 头和 ?token= 查询参数
- is_mcp_client_request: 区分 MCP 客户端和普通浏览器访问

Copyright (c) 2025 Miyang Tech (Zhuhai Hengqin) Co., Ltd.
MIT License
"""

import logging
import secrets
from typing import Optional

from starlette.requests import Request
from starlette.responses import JSONResponse

logger = logging.getLogger(__name__)


SESSION_HEADER = "mcp-session-id"
EVENT_STREAM = "text/event-stream"
TOKEN_QUERY_PARAM = "token"
BEARER_PREFIX = "Bearer "


def is_mcp_client_request(request: Request) -> bool:
    """带会话 ID 或接受 SSE 的请求视为 MCP 客户端"""
    session_id = request.headers.get(SESSION_HEADER)
    accept = request.headers.get("accept", "")
    return bool(session_id or EVENT_STREAM in accept)


def bearer_token(request: Request) -> Optional[str]:
    """从 Authorization 头取出 Bearer token"""
    header = request.headers.get("authorization", "")
    if header.startswith(BEARER_PREFIX):
        return header[len(BEARER_PREFIX):]
    return None


class AccessGuard:
    """访问控制"""

    def __init__(self, auth_token: Optional[str] = None):
        """
        Args:
            auth_token: 共享密钥（MCP_AUTH_TOKEN），为空时所有请求放行
        """
        self.auth_token = (auth_token or "").strip() or None

    @property
    def enabled(self) -> bool:
        return self.auth_token is not None

    def _matches(self, candidate: Optional[str]) -> bool:
        if candidate is None:
            return False
        return secrets.compare_digest(candidate.encode("utf-8"), self.auth_token.encode("utf-8"))

    def authorize(self, request: Request) -> bool:
        """验证请求是否有权访问"""
        if not self.enabled:
            return True

        # 两种凭证都比较，不因第一个匹配而提前返回
        header_ok = self._matches(bearer_token(request))
        query_ok = self._matches(request.query_params.get(TOKEN_QUERY_PARAM))

        if header_ok or query_ok:
            return True

        client = request.client.host if request.client else "unknown"
        logger.warning(f"拒绝未认证请求: {request.method} {request.url.path} 来自 {client}")
        return False

    @staticmethod
    def unauthorized_response() -> JSONResponse:
        return JSONResponse({"error": "Unauthorized"}, status_code=401)
