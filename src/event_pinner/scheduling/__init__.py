"""Cron scheduling of reconciliation cycles."""

from event_pinner.scheduling.scheduler import CronScheduler, next_fire_time, validate_schedule

__all__ = ["CronScheduler", "next_fire_time", "validate_schedule"]
