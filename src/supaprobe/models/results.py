"""
Result containers for remote calls and probe steps
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class APIError:
    """Error object returned alongside a result"""
    message: str
    code: Optional[str] = None
    status_code: Optional[int] = None
    details: Optional[str] = None
    hint: Optional[str] = None

    def __str__(self) -> str:
        parts = [self.message]
        if self.code:
            parts.append(f"[{self.code}]")
        if self.status_code:
            parts.append(f"(HTTP {self.status_code})")
        if self.details:
            parts.append(f"- {self.details}")
        return " ".join(parts)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "message": self.message,
            "code": self.code,
            "status_code": self.status_code,
            "details": self.details,
            "hint": self.hint,
        }


@dataclass
class APIResponse:
    """Uniform {data, error} pair for every remote call"""
    data: Any = None
    error: Optional[APIError] = None
    count: Optional[int] = None
    status_code: int = 0

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def rows(self) -> List[Dict[str, Any]]:
        """Data as a list of rows regardless of single/multi shape"""
        if self.data is None:
            return []
        if isinstance(self.data, list):
            return self.data
        return [self.data]


STATUS_PASSED = "passed"
STATUS_FAILED = "failed"
STATUS_ERROR = "error"
STATUS_SKIPPED = "skipped"


@dataclass
class StepResult:
    """Outcome of one probe step"""
    index: int
    name: str
    kind: str
    status: str
    duration: float = 0.0
    message: str = ""
    error: Optional[APIError] = None
    row_count: Optional[int] = None
    details: List[str] = field(default_factory=list)
    cleanup: bool = False

    @property
    def passed(self) -> bool:
        return self.status in (STATUS_PASSED, STATUS_SKIPPED)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "index": self.index,
            "name": self.name,
            "kind": self.kind,
            "status": self.status,
            "duration": round(self.duration, 4),
            "message": self.message,
            "error": self.error.to_dict() if self.error else None,
            "row_count": self.row_count,
            "details": self.details,
            "cleanup": self.cleanup,
        }


@dataclass
class SequenceResult:
    """Results from a complete probe sequence"""
    name: str
    steps: List[StepResult] = field(default_factory=list)
    cleanup: List[StepResult] = field(default_factory=list)
    duration: float = 0.0
    aborted: bool = False
    exception: Optional[str] = None

    @property
    def all_steps(self) -> List[StepResult]:
        return self.steps + self.cleanup

    @property
    def passed(self) -> bool:
        return self.exception is None and all(step.passed for step in self.all_steps)

    def count(self, status: str) -> int:
        return len([s for s in self.all_steps if s.status == status])

    def get_success_summary(self) -> Dict[str, Any]:
        """Get success/failure summary"""
        total = len(self.all_steps)
        passed = self.count(STATUS_PASSED)
        return {
            "total_steps": total,
            "passed": passed,
            "failed": self.count(STATUS_FAILED),
            "errors": self.count(STATUS_ERROR),
            "skipped": self.count(STATUS_SKIPPED),
            "success_rate": passed / total if total > 0 else 0,
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "passed": self.passed,
            "aborted": self.aborted,
            "exception": self.exception,
            "duration": round(self.duration, 4),
            "summary": self.get_success_summary(),
            "steps": [s.to_dict() for s in self.steps],
            "cleanup": [s.to_dict() for s in self.cleanup],
        }
