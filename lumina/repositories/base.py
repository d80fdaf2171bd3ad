import json
import logging
import threading
from abc import ABC, abstractmethod
from collections import defaultdict
from contextlib import contextmanager
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from lumina.config.settings import settings
from lumina.models.stored_collection import StoredCollection
from lumina.utils.errors import StorageError

logger = logging.getLogger(__name__)

# 同一档案共用一把可重入锁，保证"读-改-写"之间没有其他写入插入
_locks_guard = threading.Lock()
_namespace_locks: Dict[str, threading.RLock] = defaultdict(threading.RLock)


def _lock_for(namespace: str) -> threading.RLock:
    with _locks_guard:
        return _namespace_locks[namespace]


class CollectionStore(ABC):
    """
    集合存储端口
    按逻辑集合名读写整段JSON，没有查询、没有局部更新、没有事务之外的并发保证。
    """

    def __init__(self, namespace: str = None, prefix: str = None):
        self.namespace = namespace or settings.DEFAULT_PROFILE
        self.prefix = settings.STORAGE_PREFIX if prefix is None else prefix

    def key(self, name: str) -> str:
        return f"{self.prefix}{name}"

    @abstractmethod
    def _read_raw(self, key: str) -> Optional[str]:
        """读取原始JSON文本，不存在返回None"""

    @abstractmethod
    def _write_raw(self, items: Dict[str, Optional[str]]) -> None:
        """原子写入多个键，值为None表示删除"""

    @contextmanager
    def locked(self):
        """临界区：包住一次完整的读-改-写"""
        with _lock_for(self.namespace):
            yield self

    def _decode(self, key: str) -> Any:
        raw = self._read_raw(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except (json.JSONDecodeError, TypeError) as e:
            raise StorageError(f"{key} 内容无法解析: {e}")

    def load_collection(self, name: str) -> List[Dict[str, Any]]:
        """读取整个集合；不存在或已损坏时返回空列表"""
        key = self.key(name)
        try:
            value = self._decode(key)
        except StorageError as e:
            logger.warning(f"{e}，按空集合处理")
            return []
        if value is None:
            return []
        if not isinstance(value, list):
            logger.warning(f"{key} 不是列表，按空集合处理")
            return []
        return [record for record in value if isinstance(record, dict)]

    def save_collection(self, name: str, records: List[Dict[str, Any]]) -> None:
        """整体替换集合"""
        self._write_raw({self.key(name): json.dumps(records, ensure_ascii=False)})

    def load_value(self, name: str) -> Optional[Dict[str, Any]]:
        """读取单值槽位（如当前用户）；不存在或损坏返回None"""
        key = self.key(name)
        try:
            value = self._decode(key)
        except StorageError as e:
            logger.warning(f"{e}，按空值处理")
            return None
        return value if isinstance(value, dict) else None

    def save_value(self, name: str, value: Dict[str, Any]) -> None:
        self._write_raw({self.key(name): json.dumps(value, ensure_ascii=False)})

    def remove(self, name: str) -> None:
        self._write_raw({self.key(name): None})

    def save_many(self, values: Dict[str, Any]) -> None:
        """一次提交多个键（值为None表示删除）"""
        self._write_raw({
            self.key(name): None if value is None else json.dumps(value, ensure_ascii=False)
            for name, value in values.items()
        })


class SqlCollectionStore(CollectionStore):
    """基于SQLAlchemy表 stored_collections 的集合存储"""

    def __init__(self, db: Session, namespace: str = None, prefix: str = None):
        super().__init__(namespace, prefix)
        self.db = db

    def _row(self, key: str) -> Optional[StoredCollection]:
        return self.db.query(StoredCollection).filter(
            StoredCollection.namespace == self.namespace,
            StoredCollection.key == key
        ).first()

    def _read_raw(self, key: str) -> Optional[str]:
        row = self._row(key)
        return row.value if row else None

    def _write_raw(self, items: Dict[str, Optional[str]]) -> None:
        try:
            for key, raw in items.items():
                row = self._row(key)
                if raw is None:
                    if row:
                        self.db.delete(row)
                elif row:
                    row.value = raw
                else:
                    self.db.add(StoredCollection(namespace=self.namespace, key=key, value=raw))
            self.db.commit()
        except Exception as e:
            logger.error(f"写入集合失败: {list(items.keys())}, {e}")
            self.db.rollback()
            raise


class MemoryCollectionStore(CollectionStore):
    """内存版集合存储，用于测试"""

    def __init__(self, namespace: str = None, prefix: str = None, data: Dict[str, str] = None):
        super().__init__(namespace, prefix)
        self.data = {} if data is None else data

    def _read_raw(self, key: str) -> Optional[str]:
        return self.data.get((self.namespace, key))

    def _write_raw(self, items: Dict[str, Optional[str]]) -> None:
        for key, raw in items.items():
            if raw is None:
                self.data.pop((self.namespace, key), None)
            else:
                self.data[(self.namespace, key)] = raw

    def put_raw(self, name: str, raw: str) -> None:
        """直接写入原始文本（测试损坏数据用）"""
        self.data[(self.namespace, self.key(name))] = raw
