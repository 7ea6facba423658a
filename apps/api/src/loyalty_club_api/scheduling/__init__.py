"""Scheduling utilities for recurring maintenance jobs."""

from .config import JobDefinition, load_job_definitions
from .runner import MaintenanceJobScheduler

__all__ = ["JobDefinition", "MaintenanceJobScheduler", "load_job_definitions"]
