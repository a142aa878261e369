"""Analysis subjects and request modes.

Subjects are immutable once constructed. Construction is the only place
user-provided names are validated; everything downstream trusts them.
"""

from __future__ import annotations

from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict

from ..exceptions import InvalidSubjectError


class AnalysisRequestMode(str, Enum):
    SINGLE_ANALYSIS = "single_analysis"
    COMPARISON = "comparison"


SubjectKind = Literal["startup", "founder", "startup_with_founder"]


def _clean(name: Optional[str]) -> str:
    return (name or "").strip()


class AnalysisSubject(BaseModel):
    """A startup, a founder, or a startup together with its founder."""

    model_config = ConfigDict(frozen=True)

    kind: SubjectKind
    startup_name: Optional[str] = None
    founder_name: Optional[str] = None

    @classmethod
    def from_names(
        cls,
        startup_name: Optional[str] = None,
        founder_name: Optional[str] = None,
    ) -> "AnalysisSubject":
        """Build a subject from raw form input.

        Raises InvalidSubjectError when both names are blank.
        """
        startup = _clean(startup_name)
        founder = _clean(founder_name)
        if not startup and not founder:
            raise InvalidSubjectError("Either startup name or founder name is required")
        if startup and founder:
            return cls(kind="startup_with_founder", startup_name=startup, founder_name=founder)
        if startup:
            return cls(kind="startup", startup_name=startup)
        return cls(kind="founder", founder_name=founder)

    @property
    def display_name(self) -> str:
        if self.kind == "startup_with_founder":
            return f"{self.startup_name} ({self.founder_name})"
        return self.startup_name or self.founder_name or ""

    @property
    def metrics_bearing(self) -> bool:
        """Founder-only analyses are pure narrative; anything with a startup carries metrics."""
        return self.kind != "founder"

    @property
    def own_names(self) -> list[str]:
        return [n for n in (self.startup_name, self.founder_name) if n]


class ComparisonPair(BaseModel):
    """Exactly two business names, in the order the user entered them."""

    model_config = ConfigDict(frozen=True)

    first: str
    second: str

    @classmethod
    def from_businesses_string(cls, businesses_string: Optional[str]) -> "ComparisonPair":
        """Parse ``"Name A, Name B"``.

        Raises InvalidSubjectError unless there are exactly two non-blank names.
        """
        if not businesses_string or not businesses_string.strip():
            raise InvalidSubjectError("Please provide business names to compare")
        names = [part.strip() for part in businesses_string.split(",")]
        if len(names) != 2 or not all(names):
            raise InvalidSubjectError(
                'Please provide exactly two businesses to compare (e.g., "Apple, Microsoft")'
            )
        if names[0].casefold() == names[1].casefold():
            raise InvalidSubjectError("Please provide two different businesses to compare")
        return cls(first=names[0], second=names[1])

    @property
    def names(self) -> list[str]:
        return [self.first, self.second]
