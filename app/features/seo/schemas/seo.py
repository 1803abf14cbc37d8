from typing import List, Literal

from pydantic import ConfigDict, Field

from app.platform.schemas import CamelModel

CheckStatus = Literal["pass", "warning", "fail"]
CheckPriority = Literal["critical", "high", "medium", "low"]


class SEOCheckResult(CamelModel):
    model_config = ConfigDict(frozen=True)

    name: str
    status: CheckStatus
    message: str
    priority: CheckPriority
    score: int = Field(ge=0)

    @property
    def is_open_issue(self) -> bool:
        return self.status != "pass"


class SEOAnalysis(CamelModel):
    model_config = ConfigDict(frozen=True)

    score: int = Field(ge=0, le=100)
    checks: List[SEOCheckResult] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)

    def open_issues(self, priority: CheckPriority) -> List[SEOCheckResult]:
        return [check for check in self.checks if check.priority == priority and check.is_open_issue]


# Stand-in when the analyzer branch fails; no checks, so nothing is recommended.
DEFAULT_SEO_ANALYSIS = SEOAnalysis(score=0)
