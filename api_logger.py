# -*- coding: utf-8 -*-
"""
MCP 请求日志模块
记录 MCP 端点的每次访问（认证结果、请求类型、状态码、耗时），超出上限后删除最旧记录

Copyright (c) 2025 Miyang Tech (Zhuhai Hengqin) Co., Ltd.
MIT License
"""

import sqlite3
from datetime import datetime
from typing import Optional, Dict, List
from pathlib import Path
import logging

logger = logging.getLogger(__name__)


# 请求类型
KIND_MCP = "mcp"
KIND_VISIT = "visit"
KIND_UNAUTHORIZED = "unauthorized"


class APILogger:
    """MCP 请求日志记录器"""

    def __init__(self, db_path: str = "data/api_logs.db", max_records: int = 1000):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.MAX_RECORDS = max_records
        self._init_db()

    def _init_db(self):
        """初始化数据库"""
        with sqlite3.connect(self.db_path) as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS request_logs (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    timestamp TEXT NOT NULL,
                    kind TEXT NOT NULL,
                    method TEXT NOT NULL,
                    path TEXT NOT NULL,
                    session_id TEXT,
                    response_status INTEGER,
                    duration_ms INTEGER,
                    client_ip TEXT,
                    user_agent TEXT
                )
            """)
            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_request_logs_kind
                ON request_logs(kind)
            """)
            conn.commit()

    def log(
        self,
        kind: str,
        method: str,
        path: str,
        response_status: int = None,
        duration_ms: int = None,
        session_id: str = None,
        client_ip: str = None,
        user_agent: str = None
    ):
        """记录一次请求，写入失败只记日志，不影响响应"""
        try:
            with sqlite3.connect(self.db_path) as conn:
                conn.execute("""
                    INSERT INTO request_logs (
                        timestamp, kind, method, path, session_id,
                        response_status, duration_ms, client_ip, user_agent
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """, (
                    datetime.now().isoformat(),
                    kind,
                    method.upper(),
                    path,
                    session_id,
                    response_status,
                    duration_ms,
                    client_ip,
                    user_agent[:200] if user_agent else None
                ))
                conn.commit()

                self._cleanup_old_records(conn)

        except sqlite3.Error as e:
            logger.error(f"记录请求日志失败: {e}")

    def _cleanup_old_records(self, conn: sqlite3.Connection):
        """清理超出限制的旧记录"""
        count = conn.execute("SELECT COUNT(*) FROM request_logs").fetchone()[0]

        if count > self.MAX_RECORDS:
            delete_count = count - self.MAX_RECORDS
            conn.execute("""
                DELETE FROM request_logs WHERE id IN (
                    SELECT id FROM request_logs ORDER BY id ASC LIMIT ?
                )
            """, (delete_count,))
            conn.commit()
            logger.info(f"清理了 {delete_count} 条旧的请求日志")

    def get_logs(
        self,
        limit: int = 50,
        offset: int = 0,
        kind: str = None,
        method: str = None
    ) -> List[Dict]:
        """获取日志列表（最新在前）"""
        query = "SELECT * FROM request_logs WHERE 1=1"
        params = []

        if kind:
            query += " AND kind = ?"
            params.append(kind)

        if method:
            query += " AND method = ?"
            params.append(method.upper())

        query += " ORDER BY id DESC LIMIT ? OFFSET ?"
        params.extend([limit, offset])

        with sqlite3.connect(self.db_path) as conn:
            conn.row_factory = sqlite3.Row
            return [dict(row) for row in conn.execute(query, params).fetchall()]

    def get_stats(self) -> Dict:
        """按请求类型、状态统计"""
        with sqlite3.connect(self.db_path) as conn:
            stats = {}
            stats['total'] = conn.execute("SELECT COUNT(*) FROM request_logs").fetchone()[0]

            cursor = conn.execute("""
                SELECT kind, COUNT(*) FROM request_logs GROUP BY kind
            """)
            stats['by_kind'] = {row[0]: row[1] for row in cursor.fetchall()}

            cursor = conn.execute("""
                SELECT method, COUNT(*) FROM request_logs GROUP BY method
            """)
            stats['by_method'] = {row[0]: row[1] for row in cursor.fetchall()}

            stats['errors'] = conn.execute("""
                SELECT COUNT(*) FROM request_logs WHERE response_status >= 400
            """).fetchone()[0]

            return stats

    def clear_logs(self):
        """清空所有日志"""
        with sqlite3.connect(self.db_path) as conn:
            conn.execute("DELETE FROM request_logs")
            conn.commit()
        logger.info("已清空所有请求日志")
