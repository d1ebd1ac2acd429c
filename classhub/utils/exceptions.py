"""
Service-level exceptions

Services raise ValueError for bad input; the subclasses below let routers
pick a more specific status code.
"""


class ConflictError(ValueError):
    """The write lost a race or would duplicate existing state (HTTP 409)"""


class InvalidTransitionError(ValueError):
    """A session status change that the lifecycle does not allow"""

    def __init__(self, current: str, target: str, reason: str = None):
        self.current = current
        self.target = target
        message = f"Cannot move session from '{current}' to '{target}'"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
