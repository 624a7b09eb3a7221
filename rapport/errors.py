"""Exception taxonomy for the rapport pipeline.

The HTTP boundary picks a status code from the exception class alone, so every
terminal failure in the pipeline is raised as one of these.
"""


class RapportError(Exception):
    """Base class for all pipeline failures."""


class ZipValidationError(RapportError, ValueError):
    """The ZIP code is not exactly five digits; raised before any I/O."""


class ZipNotFoundError(RapportError):
    """The geocoding upstream does not know the ZIP code."""

    def __init__(self, zip_code: str):
        super().__init__(f"ZIP {zip_code} not found.")
        self.zip_code = zip_code


class UpstreamError(RapportError):
    """An upstream call failed at the transport or protocol level."""


class TransportFailure(UpstreamError):
    """Network error or non-success status from an upstream."""


class TransportTimeout(UpstreamError):
    """An upstream call (or a whole branch) exceeded its deadline."""


class ConfigurationError(RapportError):
    """A required endpoint or setting is missing or invalid."""


class MissingCredentialError(ConfigurationError):
    """The model API credential is not configured."""


class ParseFailure(RapportError):
    """The model reply could not be read as the expected payload."""


class EmptySynthesis(ParseFailure):
    """The model replied but produced neither anchors nor knowledge lines."""
