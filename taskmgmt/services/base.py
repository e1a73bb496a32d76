"""Shared plumbing for the rules engines: config access and the operation trail."""

from __future__ import annotations

import logging
from typing import Any, List, Optional

from taskmgmt.engine.config import RulesConfig, get_config
from taskmgmt.engine.errors import TaskMgmtError
from taskmgmt.engine.logging import log, log_operation, log_rule_violation
from taskmgmt.repositories.unit_of_work import UnitOfWork


class RulesEngine:
    """Base for ProjectService / TaskService. One instance per unit of work."""

    area = "system"

    def __init__(self, uow: UnitOfWork, rules: Optional[RulesConfig] = None):
        self._uow = uow
        self._rules = rules if rules is not None else get_config().rules
        self._logger = logging.getLogger(f"taskmgmt.services.{self.area}")

    def _reject(self, operation: str, error: TaskMgmtError, area: Optional[str] = None) -> TaskMgmtError:
        """Log a rule violation and hand the error back for raising."""
        area = area or self.area
        self._logger.info("%s %s rejected: %r", area, operation, error)
        log(log_rule_violation(area, operation, error))
        return error

    def _done(
        self,
        operation: str,
        entity_id: Any,
        user_id: Any = None,
        fields_changed: Optional[List[str]] = None,
        area: Optional[str] = None,
    ) -> None:
        area = area or self.area
        self._logger.info("%s %s committed: %s", area, operation, entity_id)
        log(log_operation(area, operation, entity_id, user_id=user_id, fields_changed=fields_changed))
