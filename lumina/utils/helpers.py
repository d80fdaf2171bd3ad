import random
import string
import threading
from datetime import datetime, date
from typing import Dict, Tuple

import pytz

from lumina.config.settings import settings

_ID_ALPHABET = string.ascii_lowercase + string.digits


def generate_id(length: int = 9) -> str:
    """生成随机ID（小写base36字符）"""
    return "".join(random.choice(_ID_ALPHABET) for _ in range(length))


def utc_now() -> datetime:
    """当前UTC时间"""
    return datetime.now(pytz.utc)


def format_timestamp(dt: datetime = None) -> str:
    """格式化时间戳"""
    if not dt:
        dt = utc_now()
    if dt.tzinfo is None:
        dt = pytz.utc.localize(dt)
    return dt.astimezone(pytz.utc).isoformat().replace("+00:00", "Z")


def local_timezone():
    return pytz.timezone(settings.TIMEZONE)


def local_date(dt: datetime, tz=None) -> date:
    """按本地时区取日历日期（无时区信息视为UTC）"""
    if dt.tzinfo is None:
        dt = pytz.utc.localize(dt)
    return dt.astimezone(tz or local_timezone()).date()


def local_today(tz=None) -> date:
    return local_date(utc_now(), tz)


def student_email(name: str) -> str:
    """由姓名生成占位邮箱"""
    return f"{'.'.join(name.lower().split())}@lumina.student"


def avatar_url(name: str) -> str:
    return f"https://api.dicebear.com/7.x/bottts/svg?seed={name}"


class RequestSequencer:
    """
    一次性生成请求的序号分配器
    同一 (档案, 功能) 上后发出的请求总是覆盖先发出的请求，
    先发出但后返回的结果视为过期，不再展示。
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._latest: Dict[Tuple[str, str], int] = {}

    def issue(self, profile: str, feature: str) -> int:
        with self._lock:
            token = self._latest.get((profile, feature), 0) + 1
            self._latest[(profile, feature)] = token
            return token

    def is_latest(self, profile: str, feature: str, token: int) -> bool:
        with self._lock:
            return self._latest.get((profile, feature)) == token
