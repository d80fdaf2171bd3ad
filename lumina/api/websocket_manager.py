import logging
import json
from typing import Dict
from fastapi import WebSocket

logger = logging.getLogger(__name__)


class WebSocketManager:
    """WebSocket连接管理器"""

    def __init__(self):
        # 存储活跃连接: connection_id -> WebSocket
        self.active_connections: Dict[str, WebSocket] = {}
        logger.info("WebSocket管理器初始化完成")

    async def connect(self, websocket: WebSocket, connection_id: str):
        """
        保存WebSocket连接到管理器

        Args:
            websocket: 已accept的WebSocket连接
            connection_id: 连接ID
        """
        self.active_connections[connection_id] = websocket
        logger.info(f"WebSocket连接已建立: {connection_id}")

    def disconnect(self, connection_id: str):
        """
        断开WebSocket连接

        Args:
            connection_id: 连接ID
        """
        if connection_id in self.active_connections:
            del self.active_connections[connection_id]
            logger.info(f"WebSocket连接已断开: {connection_id}")

    async def send_message(self, connection_id: str, message: Dict) -> bool:
        """
        向指定连接发送消息

        Returns:
            bool: 是否发送成功
        """
        websocket = self.active_connections.get(connection_id)
        if not websocket:
            logger.warning(f"尝试向不存在的连接发送消息: {connection_id}")
            return False
        try:
            await websocket.send_text(json.dumps(message, ensure_ascii=False))
            logger.debug(f"消息已发送到{connection_id}: {message.get('type', 'unknown')}")
            return True
        except Exception as e:
            logger.error(f"发送消息到{connection_id}失败: {e}")
            self.disconnect(connection_id)
            return False

    async def close_all(self):
        """关闭所有连接（应用关闭时调用）"""
        for connection_id, websocket in list(self.active_connections.items()):
            try:
                await websocket.close(code=1001)
            except RuntimeError as e:
                logger.debug(f"连接{connection_id}已关闭: {e}")
            self.disconnect(connection_id)

    def get_connection_count(self) -> int:
        return len(self.active_connections)


# 创建全局WebSocket管理器实例
websocket_manager = WebSocketManager()
