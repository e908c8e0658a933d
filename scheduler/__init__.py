# Scheduler layer
from .sm2 import Scheduler, ScheduleResult, SM2Scheduler, correct_streak, default_scheduler

__all__ = ["Scheduler", "ScheduleResult", "SM2Scheduler", "correct_streak", "default_scheduler"]
