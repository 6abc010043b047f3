"""
app/services/business_rule_service.py

Business rule management. Rules are created and changed by admins only;
any user with dataset access may list them.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.domain.actor import Actor
from app.domain.errors import NotFoundError
from app.services.access import AccessPolicy, require_admin
from app.validators.business_rules import validate_rule_config
from db.models.business_rule import DEFAULT_RULE_PRIORITY, BusinessRule
from db.repositories.business_rule_repository import BusinessRuleRepository

logger = logging.getLogger(__name__)


class BusinessRuleService:
    def __init__(self, session: Session) -> None:
        self._session = session
        self._rules = BusinessRuleRepository(session)
        self._access = AccessPolicy(session)

    def create_rule(
        self,
        actor: Actor,
        dataset_id: uuid.UUID,
        *,
        rule_name: str,
        rule_type: str,
        rule_config: dict[str, Any],
        error_message: str,
        priority: int = DEFAULT_RULE_PRIORITY,
        is_active: bool = True,
    ) -> BusinessRule:
        require_admin(actor)
        self._access.require_dataset(dataset_id, actor)
        validate_rule_config(rule_type, rule_config)

        try:
            rule = self._rules.create_rule(
                dataset_id=dataset_id,
                rule_name=rule_name.strip(),
                rule_type=rule_type,
                rule_config=rule_config,
                error_message=error_message,
                created_by=actor.user_id,
                priority=priority,
                is_active=is_active,
            )
            self._session.commit()
        except SQLAlchemyError:
            self._session.rollback()
            raise
        logger.info(
            "Business rule created dataset_id=%s rule_id=%s type=%s priority=%d",
            dataset_id,
            rule.id,
            rule_type,
            priority,
        )
        return rule

    def list_rules(
        self,
        actor: Actor,
        dataset_id: uuid.UUID,
        *,
        active_only: bool = True,
    ) -> list[BusinessRule]:
        self._access.require_dataset(dataset_id, actor)
        return self._rules.list_rules(dataset_id, active_only=active_only)

    def update_rule(
        self,
        actor: Actor,
        dataset_id: uuid.UUID,
        rule_id: uuid.UUID,
        *,
        changes: dict[str, Any],
    ) -> BusinessRule:
        """
        Apply a partial update; the resulting definition is re-validated.
        """

        require_admin(actor)
        rule = self._require_rule(dataset_id, rule_id, actor)
        rule_type = changes.get("rule_type", rule.rule_type)
        rule_config = changes.get("rule_config", rule.rule_config)
        validate_rule_config(rule_type, rule_config)

        try:
            for attribute in ("rule_name", "rule_type", "rule_config", "error_message", "priority", "is_active"):
                if attribute in changes and changes[attribute] is not None:
                    setattr(rule, attribute, changes[attribute])
            self._session.commit()
        except SQLAlchemyError:
            self._session.rollback()
            raise
        return rule

    def delete_rule(self, actor: Actor, dataset_id: uuid.UUID, rule_id: uuid.UUID) -> None:
        require_admin(actor)
        rule = self._require_rule(dataset_id, rule_id, actor)
        try:
            self._rules.delete_rule(rule)
            self._session.commit()
        except SQLAlchemyError:
            self._session.rollback()
            raise
        logger.info("Business rule deleted dataset_id=%s rule_id=%s", dataset_id, rule_id)

    def _require_rule(self, dataset_id: uuid.UUID, rule_id: uuid.UUID, actor: Actor) -> BusinessRule:
        self._access.require_dataset(dataset_id, actor)
        rule = self._rules.get_rule(rule_id)
        if rule is None or rule.dataset_id != dataset_id:
            raise NotFoundError(f"Business rule not found: {rule_id}")
        return rule
