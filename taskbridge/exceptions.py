"""Errors raised by the sync engine"""


class TaskBridgeError(Exception):
    """Base class for task-bridge errors"""


class ConfigError(TaskBridgeError):
    """Settings are missing or invalid"""


class FetchError(TaskBridgeError):
    """A fetch-phase failure; the cycle aborts before any mutation"""


class SyncCancelled(TaskBridgeError):
    """The cycle was cancelled or ran past its deadline"""
