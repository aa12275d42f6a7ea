"""
Scheduling - periodic billing triggers and the worker that runs them.
"""

from packages.scheduling.registry import Trigger, TriggerRegistry
from packages.scheduling.triggers import build_default_registry
from packages.scheduling.worker import SchedulerWorker

__all__ = ["Trigger", "TriggerRegistry", "build_default_registry", "SchedulerWorker"]
