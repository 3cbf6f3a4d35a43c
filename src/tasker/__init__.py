"""tasker - durable time-triggered task scheduler."""

__version__ = "0.1.0"
