"""A set of custom exceptions and warnings."""
from pathlib import Path
from typing import Optional, Union


class ValidationError(Exception):
    """An error indicating that data-object does not comply with the guidelines."""


class DataSourceError(Exception):
    """Base class for all errors raised while reading an input file or directory.

    Parameters
    ----------
    message
        Description of the problem
    source
        The file or directory that caused the problem

    """

    def __init__(self, message: str, source: Optional[Union[str, Path]] = None) -> None:
        self.message = message
        self.source = source
        super().__init__(message)

    def __str__(self) -> str:
        """Return a string representation of the error."""
        if self.source is None:
            return self.message
        return f"{self.message} (source: {self.source})"


class FormatError(DataSourceError):
    """A required file or column is missing or the file layout is not understood."""


class ParseError(DataSourceError):
    """A numeric field of an input file could not be parsed."""


class EmptySourceError(DataSourceError):
    """An input file or directory does not contain any samples."""


class DegenerateGeometryError(ValueError):
    """A set of points can not define a coordinate frame (coincident, collinear or NaN points)."""


class AmbiguousHeadingError(ValueError):
    """The heading axis of the base sensor is (almost) vertical and does not define a heading."""


class MissingBaseSensorError(ValueError):
    """The designated base sensor is not part of the orientation table."""


class NoMatchingSensorsError(ValueError):
    """None of the sensors in an orientation table is declared by the model."""


class SensorMismatchWarning(UserWarning):
    """A sensor is only present in the orientation table or only declared by the model."""


class RegistrationWarning(UserWarning):
    """A segment or marker cluster could not be used during registration and was skipped."""


class UncorrectedHeadingWarning(UserWarning):
    """No base sensor was provided and orientations are assumed to be aligned with the model heading."""
