"""
FitArc — Exceptions

Malformed rows (template exercises without an id, sets without numbers)
are not exceptions: they are dropped or kept as placeholders and reported
with a printed warning where they are parsed.
"""


class FitArcError(RuntimeError):
    """Base class for engine failures surfaced to callers."""


class ConfigError(FitArcError):
    """Raised when SUPABASE_URL / SUPABASE_KEY are missing at request time."""


class CatalogFetchError(FitArcError):
    """Raised when the template catalog cannot be read. Aborts a generation run."""


class NoCandidateAvailable(FitArcError):
    """Raised when neither the template nor the exercise catalog has anything to schedule."""


class PersistenceError(FitArcError):
    """A single plan date could not be written. Counted by the orchestrator, never fatal."""

    def __init__(self, date: str, cause: Exception):
        super().__init__(f"Failed to write plan exercises for {date}: {cause}")
        self.date = date
        self.cause = cause
