"""Allow-list policy mapping an observed risk level to approve/reject."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from app.core.logger import logger
from app.schemas.moderation import RiskLevel

ELEVATED_LEVELS = (RiskLevel.medium.value, RiskLevel.high.value)


@dataclass(frozen=True, slots=True)
class AllowListPolicy:
    """Ordered set of permitted risk levels, compared case-insensitively."""

    allowed_levels: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        normalized: list[str] = []
        for level in self.allowed_levels:
            level = level.strip().lower()
            if level and level not in normalized:
                normalized.append(level)
        object.__setattr__(self, "allowed_levels", tuple(normalized))

    @classmethod
    def from_setting(cls, raw: Optional[str]) -> AllowListPolicy:
        """Build a policy from a comma-separated setting such as ``"none,low"``."""
        return cls(tuple((raw or "").split(",")))

    def allows(self, risk_level: str) -> bool:
        return risk_level.strip().lower() in self.allowed_levels

    @property
    def tolerates_elevated_risk(self) -> bool:
        return any(level in self.allowed_levels for level in ELEVATED_LEVELS)

    def decide(self, risk_level: Optional[str]) -> bool:
        """
        Return True when an image with ``risk_level`` may be published.

        A missing level is approved only if the allow-list contains neither
        ``medium`` nor ``high``.
        """
        logger.debug(
            f"RiskLevel: {risk_level} | Allowed: {list(self.allowed_levels)}",
            extra={"risk_level": risk_level}
        )
        if risk_level and risk_level.strip():
            return self.allows(risk_level)
        return not self.tolerates_elevated_risk
