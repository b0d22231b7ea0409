"""
Defines custom exceptions for the application to allow for more specific error handling.
"""


class AccuRipperError(Exception):
    """Base exception for all application-specific errors."""


class TrackNotFoundError(AccuRipperError):
    """
    Raised by a store when no track is registered under the requested link.
    This is an expected outcome that drives novelty filtering, not a failure.
    """


class FetchError(AccuRipperError):
    """Base class for transient failures talking to the remote catalog."""


class ChannelFetchError(FetchError):
    """Raised when the channel list cannot be fetched or parsed."""


class TrackFetchError(FetchError):
    """Raised when a channel's track listing cannot be fetched or decoded."""


class ByteSourceError(FetchError):
    """Raised when a media link cannot be opened as a byte stream."""


class StoreError(AccuRipperError):
    """Raised when the metadata store is unreachable or a query fails."""


class ConfigurationError(AccuRipperError):
    """Raised for issues related to configuration loading or validation."""
