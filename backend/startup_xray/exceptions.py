"""Error taxonomy for the analysis pipeline.

Only invalid input and oracle transport failures are meant to reach the
user. Missing data is absorbed into unknown fields further down.
"""

from __future__ import annotations


class StartupXRayError(Exception):
    """Base class for all application errors."""


class InvalidSubjectError(StartupXRayError):
    """User input failed basic validation; no oracle call is made."""


class OracleError(StartupXRayError):
    """Base class for failures talking to the text oracle."""


class OracleUnavailableError(OracleError):
    """Network, auth, timeout or non-200 response from the oracle."""


class OracleEmptyResponseError(OracleError):
    """The oracle answered but the completion carried no text."""


class MalformedStructuredDataError(StartupXRayError):
    """An embedded JSON fragment was missing or unparseable.

    Recovered inside the Response Parser; never surfaced to callers.
    """


class MetricsUnavailableError(StartupXRayError):
    """Comparison mode could not recover structured metrics."""


class PersistenceError(StartupXRayError):
    """A best-effort write to the datastore failed. Logged, never surfaced."""


class ChartSlotBusyError(StartupXRayError):
    """A chart was rendered into a slot whose previous handle was not disposed."""
