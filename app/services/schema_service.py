"""
app/services/schema_service.py

Dataset schema management and schema inference.

A dataset carries at most one schema; creating a second one is a conflict.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Sequence

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.domain.actor import Actor
from app.domain.errors import ConflictError, NotFoundError
from app.services.access import AccessPolicy
from app.services.schema_inference import InferredSchema, SchemaInferenceService
from app.validators.row_validator import constraint_config_problems
from db.models.dataset_schema import DatasetSchema, FieldDataType
from db.repositories.dataset_repository import DatasetRepository
from db.repositories.schema_repository import SchemaRepository
from db.repositories.types import FieldDefinition

logger = logging.getLogger(__name__)

VALIDATION_KEYS = frozenset(
    {"min_length", "max_length", "min_value", "max_value", "pattern", "options"}
)


class SchemaDefinitionError(ValueError):
    """
    Raised when submitted schema fields are inconsistent.
    """


def check_field_definitions(fields: Sequence[FieldDefinition]) -> None:
    names: set[str] = set()
    positions: set[int] = set()
    for definition in fields:
        if not definition.name or not definition.name.strip():
            raise SchemaDefinitionError("Field name is required.")
        if definition.name in names:
            raise SchemaDefinitionError(f"Duplicate field name '{definition.name}'.")
        if definition.position in positions:
            raise SchemaDefinitionError(f"Duplicate field position {definition.position}.")
        if definition.position < 0:
            raise SchemaDefinitionError("Field positions must be zero or greater.")
        if definition.data_type not in FieldDataType.ALL:
            raise SchemaDefinitionError(
                f"Unsupported data_type '{definition.data_type}' for field '{definition.name}'."
            )
        unknown = set(definition.validation) - VALIDATION_KEYS
        if unknown:
            raise SchemaDefinitionError(
                f"Unknown validation keys for field '{definition.name}': {', '.join(sorted(unknown))}."
            )
        problems = constraint_config_problems(definition.validation, choices_key="options")
        if problems:
            raise SchemaDefinitionError(
                f"Invalid validation for field '{definition.name}': {' '.join(problems)}"
            )
        names.add(definition.name)
        positions.add(definition.position)


class SchemaService:
    def __init__(
        self,
        session: Session,
        *,
        inference: SchemaInferenceService | None = None,
    ) -> None:
        self._session = session
        self._schemas = SchemaRepository(session)
        self._datasets = DatasetRepository(session)
        self._access = AccessPolicy(session)
        self._inference = inference or SchemaInferenceService()

    def get_schema(self, actor: Actor, dataset_id: uuid.UUID) -> DatasetSchema:
        self._access.require_dataset(dataset_id, actor)
        return self._require_schema(dataset_id)

    def create_schema(
        self,
        actor: Actor,
        dataset_id: uuid.UUID,
        *,
        name: str,
        description: str | None,
        fields: Sequence[FieldDefinition],
    ) -> DatasetSchema:
        self._access.require_dataset(dataset_id, actor)
        check_field_definitions(fields)
        if self._schemas.get_for_dataset(dataset_id) is not None:
            raise ConflictError("Dataset already has a schema.")

        try:
            schema = self._schemas.create_schema(
                dataset_id=dataset_id,
                name=name.strip(),
                description=description,
                fields=fields,
            )
            self._session.commit()
        except IntegrityError as exc:
            self._session.rollback()
            raise ConflictError("Schema fields conflict with existing definitions.") from exc
        except SQLAlchemyError:
            self._session.rollback()
            raise
        logger.info(
            "Schema created dataset_id=%s schema_id=%s fields=%d",
            dataset_id,
            schema.id,
            len(fields),
        )
        return schema

    def update_schema(
        self,
        actor: Actor,
        dataset_id: uuid.UUID,
        *,
        name: str | None = None,
        description: str | None = None,
        fields: Sequence[FieldDefinition] | None = None,
    ) -> DatasetSchema:
        self._access.require_dataset(dataset_id, actor)
        schema = self._require_schema(dataset_id)
        if fields is not None:
            check_field_definitions(fields)

        try:
            if name is not None and name.strip():
                schema.name = name.strip()
            if description is not None:
                schema.description = description
            if fields is not None:
                self._schemas.replace_fields(schema, fields)
            self._session.commit()
        except IntegrityError as exc:
            self._session.rollback()
            raise ConflictError("Schema fields conflict with existing definitions.") from exc
        except SQLAlchemyError:
            self._session.rollback()
            raise
        self._session.refresh(schema)
        return schema

    def delete_schema(self, actor: Actor, dataset_id: uuid.UUID) -> None:
        self._access.require_dataset(dataset_id, actor)
        schema = self._require_schema(dataset_id)
        try:
            self._schemas.delete_schema(schema)
            self._session.commit()
        except SQLAlchemyError:
            self._session.rollback()
            raise
        logger.info("Schema deleted dataset_id=%s schema_id=%s", dataset_id, schema.id)

    def swap_field_positions(
        self,
        actor: Actor,
        dataset_id: uuid.UUID,
        *,
        first_field_id: uuid.UUID,
        second_field_id: uuid.UUID,
    ) -> DatasetSchema:
        self._access.require_dataset(dataset_id, actor)
        schema = self._require_schema(dataset_id)
        first = self._schemas.get_field(schema.id, first_field_id)
        second = self._schemas.get_field(schema.id, second_field_id)
        if first is None or second is None:
            raise NotFoundError("Both fields must belong to the dataset schema.")
        if first.id == second.id:
            return schema

        try:
            self._schemas.swap_positions(first, second)
            self._session.commit()
        except SQLAlchemyError:
            self._session.rollback()
            raise
        self._session.refresh(schema)
        return schema

    def infer_schema(
        self,
        actor: Actor,
        dataset_id: uuid.UUID,
        *,
        apply: bool = False,
    ) -> tuple[InferredSchema, DatasetSchema | None]:
        """
        Infer a schema from stored rows; with ``apply`` also create it.
        """

        dataset = self._access.require_dataset(dataset_id, actor)
        rows = list(self._datasets.iter_row_data(dataset.id))
        headers: dict[str, None] = {}
        for row in rows:
            for key in row:
                headers.setdefault(key, None)

        inferred = self._inference.infer(
            headers=list(headers),
            rows=rows,
            dataset_name=dataset.name,
        )
        if not apply:
            return inferred, None

        created = self.create_schema(
            actor,
            dataset_id,
            name=inferred.name,
            description=inferred.description,
            fields=inferred.to_field_definitions(),
        )
        return inferred, created

    def _require_schema(self, dataset_id: uuid.UUID) -> DatasetSchema:
        schema = self._schemas.get_for_dataset(dataset_id)
        if schema is None:
            raise NotFoundError(f"Dataset {dataset_id} has no schema.")
        return schema
