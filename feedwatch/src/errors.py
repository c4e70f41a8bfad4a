"""Exception hierarchy shared by the ledger client, readers and detectors."""


class WatcherError(Exception):
    """Base exception for feedwatch errors."""

    pass


class FeedUnavailableError(WatcherError):
    """Raised when a contract call reverts, has no code, or the RPC fails.

    :ivar address: Contract address that was being read, if known.
    """

    def __init__(self, message: str, address: str | None = None):
        """Initialize the error.

        :param message: Error description.
        :param address: Contract address involved in the failed call.
        """
        self.address = address
        super().__init__(message)


class DecodeError(WatcherError):
    """Raised when on-chain data cannot be interpreted as a round."""

    pass


class DivisionByZeroError(WatcherError, ZeroDivisionError):
    """Raised by the decimal engine when dividing by a zero mantissa."""

    pass


class InvalidUnitError(WatcherError, ValueError):
    """Raised when a unit conversion names an unknown unit."""

    pass


class InvalidAddressError(WatcherError, ValueError):
    """Raised when a string is not a valid EVM address."""

    pass


class DetectorConfigError(WatcherError):
    """Raised when a detector is built from invalid parameters."""

    pass


class SignerUnavailableError(WatcherError):
    """Raised when a write operation needs a private key and none is set."""

    pass
