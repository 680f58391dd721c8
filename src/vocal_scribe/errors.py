"""
Error types shared by the service adapters.
Every adapter failure is a ServiceError; the app only ever catches that.
"""


class ServiceError(Exception):
    """An external service call failed."""


class MalformedResponseError(ServiceError):
    """The service answered, but not with the shape we expect."""


class NotAuthenticatedError(ServiceError):
    """A call was made without the token or key it needs."""
