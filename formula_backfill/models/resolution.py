from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

"""Resolution result models.

A lookup either yields a non-empty formula string or a typed failure reason.
The orchestrator decides write vs. log from this value alone.
"""

__all__ = [
    "ChemicalInfo",
    "FailureReason",
    "ResolutionResult",
]


class FailureReason(Enum):
    """Why a row could not be enriched.

    The first four are produced by the resolver; MISSING_CAS and WRITE_ERROR
    are assigned by the orchestrator around it.
    """
    NOT_FOUND = "not_found"
    FETCH_ERROR = "fetch_error"
    DECODE_ERROR = "decode_error"
    EXTRACTION_MISS = "extraction_miss"
    MISSING_CAS = "missing_cas"
    WRITE_ERROR = "write_error"


@dataclass(frozen=True)
class ChemicalInfo:
    """Fields recovered from a reference page for one substance."""
    cas: str
    chinese_name: str = ""
    english_name: str = ""
    structure_image: str = ""
    formula: str = ""


@dataclass(frozen=True)
class ResolutionResult:
    cas: str
    formula: str | None = None
    info: ChemicalInfo | None = None
    reason: FailureReason | None = None
    url: str | None = None
    status_code: int | None = None  # HTTP status when the server answered
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.reason is None and bool(self.formula)

    @staticmethod
    def success(cas: str, info: ChemicalInfo, url: str | None = None) -> ResolutionResult:
        return ResolutionResult(cas=cas, formula=info.formula, info=info, url=url)

    @staticmethod
    def failure(
        cas: str,
        reason: FailureReason,
        *,
        url: str | None = None,
        status_code: int | None = None,
        message: str = "",
    ) -> ResolutionResult:
        return ResolutionResult(
            cas=cas,
            reason=reason,
            url=url,
            status_code=status_code,
            message=message,
        )
