"""
colorbot/errors.py - Things that end a run.

Transient stuff (no frame, no match) never gets here. It is absorbed by the
executor's retry flow. Everything below aborts the run.
"""


class ColorBotError(Exception):
    """Base for all fatal bot errors."""


class CaptureError(ColorBotError):
    # Display could not be opened at all
    pass


class ConfigurationError(ColorBotError):
    # Bad script, bad config value or unknown action kind
    pass


class InjectorError(ColorBotError):
    # Motion/action execution failed. Never retried: a partial click is not safe to repeat.
    pass


class GuardTimeoutError(ColorBotError):
    # Pre-run guard state did not clear within its budget
    pass
