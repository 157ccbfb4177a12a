# src/execution/errors.py
"""Exceptions raised by the broker execution layer."""


class BrokerError(Exception):
    """A broker request failed.

    Attributes:
        message: Error text returned by the broker or the transport.
        status_code: HTTP status code, if the broker answered.
    """

    def __init__(self, message: str, status_code: int | None = None):
        self.message = message
        self.status_code = status_code
        super().__init__(str(self))

    def __str__(self) -> str:
        if self.status_code is not None:
            return f"HTTP {self.status_code}: {self.message}"
        return self.message


class BrokerNotConfiguredError(BrokerError):
    """The account has no usable API credentials."""

    def __init__(self, account_id: str):
        self.account_id = account_id
        super().__init__(f"Alpaca API not configured for account {account_id}")
