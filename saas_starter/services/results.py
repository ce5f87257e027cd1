# saas_starter/services/results.py
from dataclasses import dataclass
from typing import Optional

from saas_starter.models.team import Team
from saas_starter.models.user import User


@dataclass
class ActionResult:
    """Outcome of a form action: business-rule failures are values, not exceptions."""

    error: Optional[str] = None
    success: Optional[str] = None
    user: Optional[User] = None
    team: Optional[Team] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def fail(cls, message: str) -> "ActionResult":
        return cls(error=message)
