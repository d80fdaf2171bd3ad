"""
进度/游戏化统计
全部是纯函数：等级由经验值推导，连续天数和周学习时长每次都从日志重新计算，不保存任何状态。
"""

from datetime import date, timedelta
from typing import Any, Dict, Iterable, List, Set

from lumina.models.learning_log import LearningLog
from lumina.models.user import User
from lumina.utils.helpers import local_date, local_today

XP_PER_LEVEL = 1000
XP_PER_CORRECT_ANSWER = 25

_WEEKDAYS = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]


def level(xp: int) -> int:
    """等级：每1000经验升一级，从1级开始"""
    return max(xp, 0) // XP_PER_LEVEL + 1


def progress_percent_within_level(xp: int) -> float:
    """当前等级内的进度百分比 [0, 100)"""
    return (max(xp, 0) % XP_PER_LEVEL) / 10


def xp_to_next_level(xp: int) -> int:
    return XP_PER_LEVEL - max(xp, 0) % XP_PER_LEVEL


def study_dates(logs: Iterable[LearningLog], tz=None) -> Set[date]:
    """有日志的本地日期集合"""
    return {local_date(log.date, tz) for log in logs}


def streak(logs: Iterable[LearningLog], today: date, tz=None) -> int:
    """
    连续学习天数
    今天没有日志时从昨天开始算；昨天也没有则为0。从起点逐日往回数，遇到空档停止。
    """
    dates = study_dates(logs, tz)
    check = today
    if check not in dates:
        check = today - timedelta(days=1)
        if check not in dates:
            return 0

    count = 0
    while check in dates:
        count += 1
        check -= timedelta(days=1)
    return count


def weekly_study_minutes(logs: Iterable[LearningLog], today: date, tz=None) -> List[Dict[str, Any]]:
    """最近7天（含今天）每天的学习分钟数，从最早一天开始排列，没有日志的日子为0"""
    days = [today - timedelta(days=offset) for offset in range(6, -1, -1)]
    totals = {day: 0 for day in days}
    for log in logs:
        day = local_date(log.date, tz)
        if day in totals:
            totals[day] += log.duration
    return [
        {"date": day.isoformat(), "day": _WEEKDAYS[day.weekday()], "minutes": totals[day]}
        for day in days
    ]


def weekly_study_hours(logs: Iterable[LearningLog], today: date, tz=None) -> List[Dict[str, Any]]:
    """仪表盘图表用：按小时，保留一位小数"""
    return [
        {"date": bucket["date"], "day": bucket["day"], "hours": round(bucket["minutes"] / 60, 1)}
        for bucket in weekly_study_minutes(logs, today, tz)
    ]


def total_study_hours(logs: Iterable[LearningLog]) -> float:
    return round(sum(log.duration for log in logs) / 60, 1)


def recent_logs(logs: Iterable[LearningLog], limit: int = 3) -> List[LearningLog]:
    return sorted(logs, key=lambda log: log.date, reverse=True)[:limit]


def dashboard(user: User, logs: List[LearningLog], today: date = None, tz=None) -> Dict[str, Any]:
    """仪表盘汇总"""
    today = today or local_today(tz)
    return {
        "user_id": user.id,
        "name": user.name,
        "year_group": user.year_group,
        "target_grade": user.target_grade,
        "join_date": user.join_date,
        "xp": user.xp,
        "level": level(user.xp),
        "level_progress": progress_percent_within_level(user.xp),
        "xp_to_next_level": xp_to_next_level(user.xp),
        "streak": streak(logs, today, tz),
        "total_study_hours": total_study_hours(logs),
        "weekly": weekly_study_hours(logs, today, tz),
        "syllabus_mastery": user.syllabus_mastery,
        "recent_logs": recent_logs(logs),
    }
