# WORKFLOW: Exception types shared by the import pipeline.
# Used by: source reader (fatal input errors), pipeline driver, CLI
# Only SourceNotFoundError aborts a run; everything else is recorded
# as a diagnostic on the run result.


class ETLError(Exception):
    """Base class for import pipeline errors."""


class SourceNotFoundError(ETLError):
    """Raised when the input file of a run does not exist."""

    def __init__(self, path):
        self.path = str(path)
        super().__init__(f"Source file not found: {self.path}")


class ConfigurationError(ETLError, ValueError):
    """Raised for invalid job or sink configuration."""
