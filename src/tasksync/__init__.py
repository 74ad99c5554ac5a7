"""tasksync: offline-first task tracker client with a sync core."""

__version__ = "0.1.0"
