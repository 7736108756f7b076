"""
Reaper module.
Contains the reaper that reclaims abandoned processing jobs.
"""

from queuectl.reaper.main import Reaper, run

__all__ = ["Reaper", "run"]
