"""
Row factories for database-backed tests.
"""

from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy.orm import Session

from db.models.business_rule import BusinessRule
from db.models.dataset import Dataset, DatasetStatus
from db.models.dataset_schema import DatasetSchema, SchemaField
from db.models.project import MemberRole, MemberStatus, Project, ProjectMember
from db.models.user import User
from db.repositories.dataset_repository import DatasetRepository



def make_user(session: Session, *, email: str | None = None, name: str = "Test User") -> User:
    user = User(
        email=email or f"user-{uuid.uuid4().hex[:8]}@example.com",
        name=name,
        google_id=f"google-{uuid.uuid4().hex}",
    )
    session.add(user)
    session.commit()
    return user


def make_project(session: Session, owner: User, *, name: str = "Sales") -> Project:
    project = Project(name=name, owner_id=owner.id)
    session.add(project)
    session.flush()
    session.add(
        ProjectMember(
            project_id=project.id,
            user_id=owner.id,
            role=MemberRole.OWNER,
            status=MemberStatus.ACCEPTED,
            permissions={},
        )
    )
    session.commit()
    return project


def add_member(
    session: Session,
    project: Project,
    user: User,
    *,
    status: str = MemberStatus.ACCEPTED,
) -> ProjectMember:
    member = ProjectMember(
        project_id=project.id,
        user_id=user.id,
        role=MemberRole.COLLABORATOR,
        status=status,
        permissions={},
    )
    session.add(member)
    session.commit()
    return member


def make_dataset(
    session: Session,
    project: Project,
    uploader: User,
    *,
    rows: list[dict[str, Any]] | None = None,
    status: str = DatasetStatus.READY,
    name: str = "orders",
) -> Dataset:
    """
    Create a dataset with ``rows`` stored at row_index 0..n-1.
    """

    stored_rows = rows or []
    dataset = Dataset(
        project_id=project.id,
        name=name,
        file_name=f"{name}.csv",
        file_path=f"datasets/{project.id}/{name}.csv",
        file_size=100,
        mime_type="text/csv",
        row_count=len(stored_rows),
        column_count=len(stored_rows[0]) if stored_rows else 0,
        status=status,
        uploaded_by=uploader.id,
    )
    session.add(dataset)
    session.flush()
    if stored_rows:
        DatasetRepository(session).bulk_insert_rows(
            dataset_id=dataset.id,
            rows=stored_rows,
            start_index=0,
            actor_id=uploader.id,
        )
    session.commit()
    return dataset


def make_schema(
    session: Session,
    dataset: Dataset,
    fields: list[dict[str, Any]],
    *,
    name: str = "orders schema",
) -> DatasetSchema:
    schema = DatasetSchema(dataset_id=dataset.id, name=name)
    session.add(schema)
    session.flush()
    for position, field_spec in enumerate(fields):
        spec = dict(field_spec)
        session.add(
            SchemaField(
                schema_id=schema.id,
                position=spec.pop("position", position),
                validation=spec.pop("validation", {}),
                **spec,
            )
        )
    session.commit()
    session.refresh(schema)
    return schema


def make_rule(
    session: Session,
    dataset: Dataset,
    creator: User,
    *,
    rule_name: str,
    rule_type: str,
    rule_config: dict[str, Any],
    priority: int = 100,
    error_message: str | None = None,
    is_active: bool = True,
) -> BusinessRule:
    rule = BusinessRule(
        dataset_id=dataset.id,
        rule_name=rule_name,
        rule_type=rule_type,
        rule_config=rule_config,
        error_message=error_message or f"{rule_name} failed",
        priority=priority,
        is_active=is_active,
        created_by=creator.id,
    )
    session.add(rule)
    session.commit()
    return rule
