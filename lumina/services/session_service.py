#!/usr/bin/env python3
"""
会话服务模块
负责当前登录用户：恢复会话、登录、注册、更新（双写）、退出。
认证失败以 AuthError 值返回，不会以异常形式抛出本模块。
"""

import logging
from typing import Any, Dict, Optional, Union

from lumina.models.user import STARTER_SUBJECTS, User
from lumina.repositories.base import CollectionStore
from lumina.repositories.user_repository import UserRepository
from lumina.utils.errors import AuthError, ValidationError
from lumina.utils.helpers import avatar_url, generate_id, student_email, utc_now

logger = logging.getLogger(__name__)

MIN_SECRET_CODE_LENGTH = 3


class SessionService:
    """当前会话用户管理"""

    def __init__(self, store: CollectionStore):
        self.store = store
        self.user_repo = UserRepository(store)

    def restore_session(self) -> Optional[User]:
        """读取当前用户槽位，未登录返回None"""
        return self.user_repo.get_current()

    def login(self, name: str, secret_code: str) -> Union[User, AuthError]:
        """姓名大小写不敏感匹配 + 暗号精确匹配"""
        wanted = (name or "").strip().lower()
        user = next(
            (u for u in self.user_repo.get_all()
             if u.name.lower() == wanted and u.secret_code == secret_code),
            None
        )
        if not user:
            logger.info(f"登录失败，未找到学生: {name!r}")
            return AuthError.NOT_FOUND

        self.user_repo.set_current(user)
        logger.info(f"学生登录成功: {user.id}")
        return user

    def signup(self, profile: Dict[str, Any]) -> Union[User, AuthError]:
        """
        注册新学生

        Args:
            profile: name, secret_code, year_group, target_grade, role（可选）

        Returns:
            User 或 AuthError.NAME_TAKEN / AuthError.WEAK_CODE

        Raises:
            ValidationError: 姓名为空
        """
        name = (profile.get("name") or "").strip()
        secret_code = profile.get("secret_code") or ""
        if not name:
            raise ValidationError("Name is required.")

        with self.store.locked():
            if self.user_repo.get_by_name(name):
                logger.info(f"注册失败，姓名已被使用: {name!r}")
                return AuthError.NAME_TAKEN

            if len(secret_code) < MIN_SECRET_CODE_LENGTH:
                return AuthError.WEAK_CODE

            user = User(
                id=generate_id(),
                name=name,
                email=student_email(name),
                secret_code=secret_code,
                year_group=profile.get("year_group") or "Year 7",
                target_grade=profile.get("target_grade") or "Exceeding",
                avatar=avatar_url(name),
                join_date=utc_now(),
                xp=0,
                syllabus_mastery={subject: 0 for subject in STARTER_SUBJECTS},
                role=profile.get("role") or "student",
            )
            self.user_repo.create(user)

        logger.info(f"新学生注册成功: {user.id} ({user.name})")
        return user

    def update_user(self, updated_user: User) -> User:
        """当前用户槽位与用户集合一并更新"""
        found = self.user_repo.save_session_user(updated_user)
        if not found:
            logger.warning(f"用户集合中不存在 {updated_user.id}，仅更新当前会话")
        return updated_user

    def logout(self) -> None:
        self.user_repo.clear_current()
        logger.info("当前会话已退出")

    def award_xp(self, user: User, amount: int) -> User:
        """增加经验值（只允许非负）"""
        if amount < 0:
            raise ValidationError("XP awards cannot be negative.")
        with self.store.locked():
            base = self.user_repo.get_by_id(user.id) or user
            return self.update_user(base.model_copy(update={"xp": base.xp + amount}))

    def set_mastery(self, user: User, subject: str, value: int) -> User:
        """设置某科掌握度，限制在0-100"""
        if not subject or not subject.strip():
            raise ValidationError("Subject is required.")
        with self.store.locked():
            base = self.user_repo.get_by_id(user.id) or user
            mastery = dict(base.syllabus_mastery)
            mastery[subject] = max(0, min(100, int(value)))
            return self.update_user(base.model_copy(update={"syllabus_mastery": mastery}))
