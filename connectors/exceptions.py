"""
Exception types for connector operations.
"""


class ConnectorException(Exception):
    """Base exception for all connector errors."""

    pass


class PreconditionException(ConnectorException):
    """Raised when the caller supplies invalid or conflicting arguments."""

    pass


class RemoteUrlNotFoundException(ConnectorException):
    """Raised when the git remote URL cannot be found or parsed."""

    pass


class DomainOrRepoExpectedException(ConnectorException):
    """Raised when only one of domain and repository path is given."""

    pass


class ConfigurationException(ConnectorException):
    """Raised when the connector configuration is missing or invalid."""

    pass


class OperationNotSupportedException(ConnectorException):
    """Raised when a backend does not support an operation on a resource."""

    pass


class RateLimitException(ConnectorException):
    """Raised when API rate limit is exceeded and no retries are allowed."""

    def __init__(self, message: str, rate_limit=None):
        super().__init__(message)
        self.rate_limit = rate_limit


class BackoffMaxRetriesException(ConnectorException):
    """Raised when exponential backoff gives up after the maximum retries."""

    pass


class APIException(ConnectorException):
    """Raised when API returns an error status."""

    def __init__(self, message: str, status: int = None, body: str = ""):
        super().__init__(message)
        self.status = status
        self.body = body


class TransportException(ConnectorException):
    """Raised when the HTTP call could not complete (DNS, timeout, refused)."""

    pass


class UnexpectedResponseContractException(ConnectorException):
    """
    Raised when a response is missing a required field or has the wrong shape.

    This signals that the remote API changed its contract, not a caller error.
    """

    pass
