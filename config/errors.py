"""
PLAYCHECK - Error types

Everything the package raises on purpose derives from PlaycheckError.
The concrete errors also subclass ValueError so callers that already
guard input parsing with ``except ValueError`` keep working.
"""


class PlaycheckError(Exception):
    """Base class for playcheck errors."""


class InvalidConfiguration(PlaycheckError, ValueError):
    """Simulation settings that would loop zero or unbounded times."""


class ScriptLoadError(PlaycheckError, ValueError):
    """A script source could not be read or is structurally invalid."""
