"""
Business rule repository.
"""

from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from db.models.business_rule import DEFAULT_RULE_PRIORITY, BusinessRule


class BusinessRuleRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def create_rule(
        self,
        *,
        dataset_id: uuid.UUID,
        rule_name: str,
        rule_type: str,
        rule_config: dict[str, Any],
        error_message: str,
        created_by: uuid.UUID,
        priority: int = DEFAULT_RULE_PRIORITY,
        is_active: bool = True,
    ) -> BusinessRule:
        rule = BusinessRule(
            dataset_id=dataset_id,
            rule_name=rule_name,
            rule_type=rule_type,
            rule_config=rule_config,
            error_message=error_message,
            created_by=created_by,
            priority=priority,
            is_active=is_active,
        )
        self._session.add(rule)
        self._session.flush()
        return rule

    def get_rule(self, rule_id: uuid.UUID) -> BusinessRule | None:
        return self._session.get(BusinessRule, rule_id)

    def list_rules(self, dataset_id: uuid.UUID, *, active_only: bool = True) -> list[BusinessRule]:
        """
        Rules of one dataset in evaluation order (priority, then name).
        """

        stmt = select(BusinessRule).where(BusinessRule.dataset_id == dataset_id)
        if active_only:
            stmt = stmt.where(BusinessRule.is_active.is_(True))
        stmt = stmt.order_by(BusinessRule.priority, BusinessRule.rule_name)
        return list(self._session.scalars(stmt).all())

    def delete_rule(self, rule: BusinessRule) -> None:
        self._session.delete(rule)
        self._session.flush()
