"""
MCP 服务器 - 当前日期时间

运行方式:
    python server.py

访问地址:
    MCP 端点: http://localhost:8633/api/mcp
    浏览器直接访问 MCP 端点会得到服务状态 JSON

Copyright (c) 2025 Miyang Tech (Zhuhai Hengqin) Co., Ltd.
MIT License
"""

import logging
import time
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import Optional, Annotated, AsyncContextManager

import anyio
import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from mcp.server.fastmcp import FastMCP
from mcp.server.streamable_http_manager import StreamableHTTPSessionManager
from pydantic import Field
from starlette.types import Scope, Receive, Send, Message

from auth import AccessGuard, is_mcp_client_request, SESSION_HEADER
from api_logger import APILogger, KIND_MCP, KIND_VISIT, KIND_UNAUTHORIZED
from config import load_config
from models import ServerConfig
from time_tools import TimezoneResolver, DateTimeTool
from time_tools.datetime_tool import TOOL_NAME, TOOL_TITLE, TOOL_DESCRIPTION, TIMEZONE_FIELD_DESCRIPTION

logger = logging.getLogger(__name__)


FRIENDLY_GET_RESPONSE = {
    "name": "Time Aware MCP Server",
    "status": "running",
    "mcp": "Connect with an MCP client (e.g. ChatGPT, MCP Inspector) using POST",
}


READ_METHODS = ("GET", "HEAD")


def friendly_response() -> JSONResponse:
    return JSONResponse(FRIENDLY_GET_RESPONSE, status_code=200)


# ==================== MCP 服务器实例 ====================

def build_tool(config: ServerConfig) -> DateTimeTool:
    return DateTimeTool(TimezoneResolver(default_timezone=config.default_timezone))


def build_mcp_server(config: ServerConfig, tool: DateTimeTool) -> FastMCP:
    """创建 FastMCP 实例并注册 get_current_datetime"""
    mcp = FastMCP(config.name, log_level="DEBUG" if config.verbose_logs else "INFO")

    # 只返回一个文本块，不声明 outputSchema
    @mcp.tool(name=TOOL_NAME, title=TOOL_TITLE, description=TOOL_DESCRIPTION, structured_output=False)
    def get_current_datetime(
        timezone: Annotated[Optional[str], Field(description=TIMEZONE_FIELD_DESCRIPTION)] = None
    ) -> str:
        return tool.invoke(timezone).text

    return mcp


# ==================== 协议处理 ====================

class ProtocolHandler(ABC):
    """
    MCP 协议处理接口

    负责会话、消息封装和工具分发，本服务只在外层做认证和请求识别
    """

    @abstractmethod
    def lifespan(self) -> AsyncContextManager[None]:
        ...

    @abstractmethod
    async def handle(self, scope: Scope, receive: Receive, send: Send) -> None:
        ...


class StreamableHTTPHandler(ProtocolHandler):
    """基于 MCP SDK StreamableHTTPSessionManager 的协议处理"""

    def __init__(self, mcp: FastMCP, config: ServerConfig):
        self.max_duration = config.max_duration
        # json_response=True: 每次调用返回一个 JSON 响应，不使用 SSE 流式响应
        self.session_manager = StreamableHTTPSessionManager(
            app=mcp._mcp_server,
            json_response=config.json_response,
            stateless=config.stateless,
        )

    def lifespan(self) -> AsyncContextManager[None]:
        return self.session_manager.run()

    async def handle(self, scope: Scope, receive: Receive, send: Send) -> None:
        with anyio.move_on_after(self.max_duration) as deadline:
            await self.session_manager.handle_request(scope, receive, send)
        if deadline.cancelled_caught:
            logger.warning(f"[MCP] 请求超过 {self.max_duration} 秒，已中止")


class _ResponseTracker:
    """记录响应是否已经开始发送"""

    def __init__(self, send: Send):
        self._send = send
        self.started = False

    async def __call__(self, message: Message) -> None:
        if message["type"] == "http.response.start":
            self.started = True
        await self._send(message)


class McpEndpoint:
    """
    MCP 端点（GET / POST / DELETE）

    - 所有方法先认证
    - GET / HEAD: 非 MCP 客户端（浏览器）返回服务状态；转发失败或超时未响应时同样返回服务状态
    - POST / DELETE: 直接转发给协议处理，错误不在这里处理
    """

    def __init__(self, guard: AccessGuard, handler: ProtocolHandler):
        self.guard = guard
        self.handler = handler

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        request = Request(scope, receive)

        if not self.guard.authorize(request):
            await self.guard.unauthorized_response()(scope, receive, send)
            return

        if request.method in READ_METHODS:
            await self._handle_get(request, scope, receive, send)
            return

        await self.handler.handle(scope, receive, send)

    async def _handle_get(self, request: Request, scope: Scope, receive: Receive, send: Send) -> None:
        if not is_mcp_client_request(request):
            await friendly_response()(scope, receive, send)
            return

        tracker = _ResponseTracker(send)
        try:
            await self.handler.handle(scope, receive, tracker)
        except Exception:
            logger.exception("[MCP] GET 请求转发失败")

        if not tracker.started:
            await friendly_response()(scope, receive, send)


# ==================== 应用 ====================

def create_app(
    config: Optional[ServerConfig] = None,
    protocol_handler: Optional[ProtocolHandler] = None,
    api_logger: Optional[APILogger] = None
) -> FastAPI:
    """
    创建 Web 应用

    Args:
        config: 服务配置，默认通过 load_config() 读取
        protocol_handler: MCP 协议处理，默认使用 StreamableHTTPHandler
        api_logger: 请求日志，默认按配置创建（request_log 为 false 时不记录）
    """
    if config is None:
        config = load_config()

    tool = build_tool(config)
    if protocol_handler is None:
        protocol_handler = StreamableHTTPHandler(build_mcp_server(config, tool), config)

    if api_logger is None and config.request_log:
        api_logger = APILogger(config.request_log_path, max_records=config.max_log_records)

    guard = AccessGuard(config.auth_token)

    @asynccontextmanager
    async def lifespan(app):
        async with protocol_handler.lifespan():
            yield

    app = FastAPI(
        title=config.name,
        description="当前日期时间 MCP 服务",
        version="1.0.0",
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
        lifespan=lifespan
    )
    app.state.config = config
    app.state.tool = tool
    app.state.protocol_handler = protocol_handler
    app.state.api_logger = api_logger

    # 请求日志中间件
    if api_logger is not None:
        @app.middleware("http")
        async def logging_middleware(request: Request, call_next):
            if request.url.path != config.endpoint_path:
                return await call_next(request)

            start_time = time.time()
            response = await call_next(request)
            duration_ms = int((time.time() - start_time) * 1000)

            if response.status_code == 401:
                kind = KIND_UNAUTHORIZED
            elif request.method in READ_METHODS and not is_mcp_client_request(request):
                kind = KIND_VISIT
            else:
                kind = KIND_MCP

            api_logger.log(
                kind=kind,
                method=request.method,
                path=request.url.path,
                response_status=response.status_code,
                duration_ms=duration_ms,
                session_id=request.headers.get(SESSION_HEADER) or response.headers.get(SESSION_HEADER),
                client_ip=request.client.host if request.client else None,
                user_agent=request.headers.get("user-agent")
            )
            return response

    # ==================== MCP 路由 ====================

    app.add_route(
        config.endpoint_path,
        McpEndpoint(guard, protocol_handler),
        methods=["GET", "POST", "DELETE"]
    )

    return app


# ==================== 运行服务器 ====================

def run_server(config: Optional[ServerConfig] = None):
    """运行 MCP 服务器"""
    if config is None:
        config = load_config()

    logging.basicConfig(
        level=logging.DEBUG if config.verbose_logs else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )

    app = create_app(config)

    print(f"\n{'='*50}")
    print(f"  {config.name} 已启动")
    print(f"{'='*50}")
    print(f"  MCP 端点: http://localhost:{config.port}{config.endpoint_path}")
    print(f"  认证: {'已启用' if config.auth_token else '未启用（开放访问）'}")
    print(f"  默认时区: {app.state.tool.resolver.resolve(None)}")
    print(f"{'='*50}\n")

    uvicorn.run(app, host=config.host, port=config.port)


def main():
    run_server()


if __name__ == "__main__":
    main()
