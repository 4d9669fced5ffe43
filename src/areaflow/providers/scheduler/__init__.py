"""Scheduler: cron and on-activation triggers."""

from .triggers import CronTrigger, OnActivationTrigger, SelfFiringTrigger

__all__ = ["CronTrigger", "OnActivationTrigger", "SelfFiringTrigger"]
