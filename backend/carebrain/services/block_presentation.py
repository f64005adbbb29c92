"""
Presents a policy block to the user until dismissed
"""
from typing import Any, Callable, Dict, Optional

from carebrain.core.logging_config import LoggingConfig
from carebrain.models.blocking import BlockingRule, format_blocking_message

logger = LoggingConfig.get_logger(__name__)


class BlockPresentation:
    """Holds the rule on screen; display only, dismissal clears local state"""

    def __init__(self, on_navigate: Optional[Callable[[str], None]] = None):
        self.on_navigate = on_navigate
        self._rule: Optional[BlockingRule] = None

    @property
    def rule(self) -> Optional[BlockingRule]:
        return self._rule

    @property
    def is_visible(self) -> bool:
        return self._rule is not None

    def show(self, rule: BlockingRule) -> None:
        self._rule = rule

    def dismiss(self) -> None:
        self._rule = None

    def navigate_to_remediation(self) -> Optional[str]:
        """Hand the remediation path to the navigation callback and close"""
        if self._rule is None:
            return None
        path = self._rule.remediation_path
        if self.on_navigate is not None:
            self.on_navigate(path)
        else:
            logger.debug("No remediation navigation configured")
        self.dismiss()
        return path

    def render(self) -> Optional[str]:
        if self._rule is None:
            return None
        return format_blocking_message(self._rule)

    def to_dict(self) -> Optional[Dict[str, Any]]:
        if self._rule is None:
            return None
        return {
            "reason": self._rule.reason,
            "master_spec_section": self._rule.master_spec_section,
            "risk_prevented": self._rule.risk_prevented,
            "remediation_path": self._rule.remediation_path,
            "blocking_details": self._rule.blocking_details,
            "message": self.render(),
        }
