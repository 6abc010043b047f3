"""
Schema repository: dataset schemas and their ordered fields.
"""

from __future__ import annotations

import uuid
from collections.abc import Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from db.models.dataset_schema import DatasetSchema, SchemaField
from db.repositories.types import FieldDefinition


class SchemaRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def get_for_dataset(self, dataset_id: uuid.UUID) -> DatasetSchema | None:
        stmt = (
            select(DatasetSchema)
            .where(DatasetSchema.dataset_id == dataset_id)
            .options(selectinload(DatasetSchema.fields))
            .order_by(DatasetSchema.created_at)
        )
        return self._session.scalars(stmt).first()

    def get_schema(self, schema_id: uuid.UUID) -> DatasetSchema | None:
        return self._session.get(DatasetSchema, schema_id)

    def list_fields(self, dataset_id: uuid.UUID) -> list[SchemaField]:
        stmt = (
            select(SchemaField)
            .join(DatasetSchema, SchemaField.schema_id == DatasetSchema.id)
            .where(DatasetSchema.dataset_id == dataset_id)
            .order_by(SchemaField.position)
        )
        return list(self._session.scalars(stmt).all())

    def create_schema(
        self,
        *,
        dataset_id: uuid.UUID,
        name: str,
        description: str | None,
        fields: Sequence[FieldDefinition],
    ) -> DatasetSchema:
        schema = DatasetSchema(dataset_id=dataset_id, name=name, description=description)
        self._session.add(schema)
        self._session.flush()
        self._add_fields(schema, fields)
        self._session.refresh(schema)
        return schema

    def replace_fields(self, schema: DatasetSchema, fields: Sequence[FieldDefinition]) -> None:
        """
        Drop every field of ``schema`` and insert ``fields`` in their place.
        """

        for existing in list(schema.fields):
            self._session.delete(existing)
        self._session.flush()
        self._add_fields(schema, fields)
        self._session.refresh(schema)

    def delete_schema(self, schema: DatasetSchema) -> None:
        self._session.delete(schema)
        self._session.flush()

    def get_field(self, schema_id: uuid.UUID, field_id: uuid.UUID) -> SchemaField | None:
        stmt = select(SchemaField).where(
            SchemaField.schema_id == schema_id,
            SchemaField.id == field_id,
        )
        return self._session.scalars(stmt).first()

    def swap_positions(self, first: SchemaField, second: SchemaField) -> None:
        """
        Exchange the positions of two fields of the same schema.

        Goes through a temporary position so (schema_id, position) stays unique
        after every statement.
        """

        first_position, second_position = first.position, second.position
        first.position = -1
        self._session.flush()
        second.position = first_position
        self._session.flush()
        first.position = second_position
        self._session.flush()

    def _add_fields(self, schema: DatasetSchema, fields: Sequence[FieldDefinition]) -> None:
        for definition in fields:
            self._session.add(
                SchemaField(
                    schema_id=schema.id,
                    name=definition.name,
                    display_name=definition.display_name,
                    data_type=definition.data_type,
                    is_required=definition.is_required,
                    is_unique=definition.is_unique,
                    default_value=definition.default_value,
                    position=definition.position,
                    validation=dict(definition.validation),
                )
            )
        self._session.flush()
