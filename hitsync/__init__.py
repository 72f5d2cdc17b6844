"""
Hitting Sync.

Reconciles swing records captured by independent hitting sensors (bat
sensor, batted-ball tracker, combined unit) into calendar-day sessions
with derived performance metrics.

Modules are imported on-demand to avoid loading heavy dependencies.
"""

__version__ = "0.1.0"
__author__ = "Hitting Sync Developers"
