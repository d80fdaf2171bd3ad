import logging
from typing import List, Optional

from pydantic import ValidationError as PydanticValidationError

from lumina.models.user import User
from lumina.repositories.base import CollectionStore

logger = logging.getLogger(__name__)

USERS = "users"
CURRENT_USER = "current_user"


class UserRepository:
    """用户集合 + 当前会话用户槽位"""

    def __init__(self, store: CollectionStore):
        self.store = store

    def get_all(self) -> List[User]:
        users = []
        for record in self.store.load_collection(USERS):
            try:
                users.append(User.model_validate(record))
            except PydanticValidationError as e:
                logger.warning(f"跳过无法解析的用户记录: {e}")
        return users

    def get_by_id(self, user_id: str) -> Optional[User]:
        return next((u for u in self.get_all() if u.id == user_id), None)

    def get_by_name(self, name: str) -> Optional[User]:
        """按姓名查找（大小写不敏感）"""
        wanted = name.strip().lower()
        return next((u for u in self.get_all() if u.name.lower() == wanted), None)

    def get_current(self) -> Optional[User]:
        record = self.store.load_value(CURRENT_USER)
        if record is None:
            return None
        try:
            return User.model_validate(record)
        except PydanticValidationError as e:
            logger.warning(f"当前用户槽位无法解析，按未登录处理: {e}")
            return None

    def set_current(self, user: User) -> None:
        self.store.save_value(CURRENT_USER, user.to_dict())

    def clear_current(self) -> None:
        self.store.remove(CURRENT_USER)

    def create(self, user: User) -> User:
        """追加新用户并设为当前用户"""
        with self.store.locked():
            records = self.store.load_collection(USERS)
            records.append(user.to_dict())
            self.store.save_many({USERS: records, CURRENT_USER: user.to_dict()})
        return user

    def save_session_user(self, user: User) -> bool:
        """
        同时写当前用户槽位和用户集合中的同ID记录
        两处基于同一次读取，在一次提交中完成；集合中没有该ID时只写槽位。

        Returns:
            bool: 集合中是否找到并替换了该用户
        """
        with self.store.locked():
            records = self.store.load_collection(USERS)
            payload = user.to_dict()
            index = next((i for i, r in enumerate(records) if r.get("id") == user.id), None)
            if index is None:
                self.store.save_many({CURRENT_USER: payload})
                return False
            records[index] = payload
            self.store.save_many({USERS: records, CURRENT_USER: payload})
            return True
