"""
tests/test_governance_services.py

Project, dataset, schema and business-rule services against SQLite.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest
from sqlalchemy.orm import Session

from app.domain.actor import ROLE_ADMIN, Actor
from app.domain.errors import ConflictError, NotFoundError, PermissionDeniedError
from app.services.business_rule_service import BusinessRuleService
from app.services.dataset_service import DatasetService
from app.services.project_service import ProjectService
from app.services.schema_service import SchemaDefinitionError, SchemaService
from app.validators.business_rules import RuleConfigError
from db.models.business_rule import RuleType
from db.models.dataset import DatasetStatus
from db.models.dataset_schema import FieldDataType
from db.models.project import MemberStatus
from db.repositories.storage import LocalFileStorage
from db.repositories.types import FieldDefinition, UploadFileInput
from db.repositories.upload_repository import UploadRepository
from factories import add_member, make_dataset, make_project, make_schema, make_user


@pytest.fixture()
def people(db_session: Session) -> dict[str, Any]:
    owner = make_user(db_session, name="Owner")
    member = make_user(db_session, name="Member")
    outsider = make_user(db_session, name="Outsider")
    admin = make_user(db_session, name="Admin")
    project = make_project(db_session, owner)
    add_member(db_session, project, member)
    return {
        "owner_user": owner,
        "owner": Actor(user_id=owner.id),
        "member": Actor(user_id=member.id),
        "outsider": Actor(user_id=outsider.id),
        "admin": Actor(user_id=admin.id, role=ROLE_ADMIN),
        "project": project,
    }


@pytest.fixture()
def storage(tmp_path: Path) -> LocalFileStorage:
    return LocalFileStorage(tmp_path)


@pytest.fixture()
def datasets(db_session: Session, storage: LocalFileStorage) -> DatasetService:
    return DatasetService(
        db_session,
        upload_repository=UploadRepository(db_session, storage_backend=storage, max_upload_bytes=4096),
        insert_batch_size=2,
    )


def _upload(project_id: Any, actor: Actor, content: bytes, *, file_name: str = "orders.csv") -> UploadFileInput:
    return UploadFileInput(
        project_id=project_id,
        uploaded_by=actor.user_id,
        dataset_name="Orders",
        file_name=file_name,
        content=content,
        content_type="text/csv",
    )


# ---------------------------------------------------------------------------
# Projects
# ---------------------------------------------------------------------------


class TestProjects:
    def test_owner_is_accepted_member(self, db_session: Session, people: dict[str, Any]) -> None:
        service = ProjectService(db_session)

        project = service.create_project(people["outsider"], name="  Forecasts ")

        members = service.list_members(people["outsider"], project.id)
        assert project.name == "Forecasts"
        assert [(item.user_id, item.status) for item in members] == [
            (people["outsider"].user_id, MemberStatus.ACCEPTED)
        ]

    def test_invitation_flow(self, db_session: Session, people: dict[str, Any]) -> None:
        service = ProjectService(db_session)
        project_id = people["project"].id

        service.add_member(people["owner"], project_id, user_id=people["outsider"].user_id)
        with pytest.raises(PermissionDeniedError):
            service.get_project(people["outsider"], project_id)

        accepted = service.respond_to_invitation(people["outsider"], project_id, accept=True)

        assert accepted.status == MemberStatus.ACCEPTED
        assert accepted.joined_at is not None
        assert service.get_project(people["outsider"], project_id).id == project_id
        with pytest.raises(ConflictError):
            service.respond_to_invitation(people["outsider"], project_id, accept=False)

    def test_only_owner_invites(self, db_session: Session, people: dict[str, Any]) -> None:
        service = ProjectService(db_session)

        with pytest.raises(PermissionDeniedError):
            service.add_member(people["member"], people["project"].id, user_id=people["outsider"].user_id)
        with pytest.raises(ConflictError):
            service.add_member(people["owner"], people["project"].id, user_id=people["member"].user_id)

    def test_owner_updates_name_and_description(self, db_session: Session, people: dict[str, Any]) -> None:
        service = ProjectService(db_session)
        project_id = people["project"].id

        renamed = service.update_project(people["owner"], project_id, name="  Revenue ")
        assert (renamed.name, renamed.description) == ("Revenue", None)

        described = service.update_project(people["owner"], project_id, description=" Monthly figures ")
        assert (described.name, described.description) == ("Revenue", "Monthly figures")

    def test_update_rules(self, db_session: Session, people: dict[str, Any]) -> None:
        service = ProjectService(db_session)
        project_id = people["project"].id

        with pytest.raises(ValueError, match="No updates"):
            service.update_project(people["owner"], project_id)
        with pytest.raises(ValueError):
            service.update_project(people["owner"], project_id, name="   ")
        with pytest.raises(ValueError):
            service.update_project(people["owner"], project_id, description="x" * 1001)
        with pytest.raises(PermissionDeniedError):
            service.update_project(people["member"], project_id, name="Taken over")

    def test_admin_sees_every_project(self, db_session: Session, people: dict[str, Any]) -> None:
        project = ProjectService(db_session).get_project(people["admin"], people["project"].id)
        assert project.id == people["project"].id


# ---------------------------------------------------------------------------
# Datasets
# ---------------------------------------------------------------------------


class TestDatasets:
    def test_upload_loads_rows(self, datasets: DatasetService, people: dict[str, Any]) -> None:
        dataset = datasets.upload_dataset(
            people["member"],
            _upload(people["project"].id, people["member"], b"region,amount\nEU,1\nUS,2\nEU,3\n"),
        )

        page = datasets.preview_rows(people["member"], dataset.id, page=1, page_size=2)

        assert dataset.status == DatasetStatus.READY
        assert (dataset.row_count, dataset.column_count) == (3, 2)
        assert [row.row_index for row in page.rows] == [0, 1]
        assert (page.total, page.total_pages) == (3, 2)
        assert page.schema is None

    def test_unparseable_upload_marks_error(self, datasets: DatasetService, people: dict[str, Any]) -> None:
        dataset = datasets.upload_dataset(
            people["owner"],
            _upload(people["project"].id, people["owner"], b"a,a\n1,2\n"),
        )

        assert dataset.status == DatasetStatus.ERROR
        assert dataset.row_count == 0

    def test_outsider_cannot_upload(self, datasets: DatasetService, people: dict[str, Any]) -> None:
        with pytest.raises(PermissionDeniedError):
            datasets.upload_dataset(
                people["outsider"],
                _upload(people["project"].id, people["outsider"], b"a\n1\n"),
            )

    def test_filtered_preview(self, datasets: DatasetService, people: dict[str, Any]) -> None:
        dataset = datasets.upload_dataset(
            people["owner"],
            _upload(people["project"].id, people["owner"], b"region,amount\nEU,1\nUS,2\nEU,3\n"),
        )

        page = datasets.preview_rows(people["owner"], dataset.id, filters={"region": "EU", "": "ignored"})

        assert [row.row_index for row in page.rows] == [0, 2]
        assert page.total == 2
        assert page.filters == {"region": "EU"}

    def test_update_row_coerces_to_schema(
        self,
        db_session: Session,
        datasets: DatasetService,
        people: dict[str, Any],
    ) -> None:
        dataset = make_dataset(db_session, people["project"], people["owner_user"], rows=[{"amount": "1"}])
        make_schema(db_session, dataset, [{"name": "amount", "data_type": FieldDataType.NUMBER}])

        row = datasets.update_row(people["member"], dataset.id, 0, {"amount": "42"})

        assert row.data == {"amount": 42}
        assert row.version == 2
        assert row.updated_by == people["member"].user_id
        with pytest.raises(NotFoundError):
            datasets.update_row(people["member"], dataset.id, 5, {"amount": "1"})

    def test_delete_row_keeps_count_in_step(
        self,
        db_session: Session,
        datasets: DatasetService,
        people: dict[str, Any],
    ) -> None:
        dataset = make_dataset(db_session, people["project"], people["owner_user"], rows=[{"a": 1}, {"a": 2}])

        datasets.delete_row(people["owner"], dataset.id, 0)

        assert datasets.get_dataset(people["owner"], dataset.id).row_count == 1
        assert [row.row_index for row in datasets.preview_rows(people["owner"], dataset.id).rows] == [1]

    def test_delete_dataset_permissions(
        self,
        datasets: DatasetService,
        people: dict[str, Any],
        storage: LocalFileStorage,
    ) -> None:
        dataset = datasets.upload_dataset(
            people["owner"],
            _upload(people["project"].id, people["owner"], b"a\n1\n"),
        )
        stored_file = storage.root_dir / dataset.file_path
        assert stored_file.exists()

        with pytest.raises(PermissionDeniedError):
            datasets.delete_dataset(people["member"], dataset.id)

        datasets.delete_dataset(people["owner"], dataset.id)

        assert not stored_file.exists()
        with pytest.raises(NotFoundError):
            datasets.get_dataset(people["owner"], dataset.id)


# ---------------------------------------------------------------------------
# Schemas
# ---------------------------------------------------------------------------


class TestSchemas:
    @pytest.fixture()
    def dataset(self, db_session: Session, people: dict[str, Any]) -> Any:
        return make_dataset(
            db_session,
            people["project"],
            people["owner_user"],
            rows=[
                {"Order ID": "1", "email": "a@x.io"},
                {"Order ID": "2", "email": "b@x.io"},
            ],
        )

    def test_create_and_conflict(self, db_session: Session, people: dict[str, Any], dataset: Any) -> None:
        service = SchemaService(db_session)
        fields = [
            FieldDefinition(name="Order ID", data_type=FieldDataType.NUMBER, position=0, is_unique=True),
            FieldDefinition(name="email", data_type=FieldDataType.EMAIL, position=1),
        ]

        schema = service.create_schema(people["member"], dataset.id, name=" orders ", description=None, fields=fields)

        assert schema.name == "orders"
        assert [item.name for item in schema.fields] == ["Order ID", "email"]
        with pytest.raises(ConflictError):
            service.create_schema(people["member"], dataset.id, name="again", description=None, fields=fields)

    @pytest.mark.parametrize(
        "fields",
        [
            [
                FieldDefinition(name="a", data_type=FieldDataType.STRING, position=0),
                FieldDefinition(name="a", data_type=FieldDataType.STRING, position=1),
            ],
            [
                FieldDefinition(name="a", data_type=FieldDataType.STRING, position=0),
                FieldDefinition(name="b", data_type=FieldDataType.STRING, position=0),
            ],
            [FieldDefinition(name="a", data_type="money", position=0)],
            [FieldDefinition(name="a", data_type=FieldDataType.STRING, position=0, validation={"regex": "x"})],
            [FieldDefinition(name="a", data_type=FieldDataType.STRING, position=0, validation={"pattern": "("})],
            [FieldDefinition(name="a", data_type=FieldDataType.STRING, position=0, validation={"min_length": "three"})],
            [FieldDefinition(name="a", data_type=FieldDataType.STRING, position=0, validation={"max_length": [3]})],
            [FieldDefinition(name="a", data_type=FieldDataType.NUMBER, position=0, validation={"min_value": "low"})],
            [FieldDefinition(name="a", data_type=FieldDataType.STRING, position=0, validation={"options": "a,b"})],
        ],
    )
    def test_rejects_inconsistent_fields(
        self,
        db_session: Session,
        people: dict[str, Any],
        dataset: Any,
        fields: list[FieldDefinition],
    ) -> None:
        with pytest.raises(SchemaDefinitionError):
            SchemaService(db_session).create_schema(
                people["owner"], dataset.id, name="s", description=None, fields=fields
            )

    def test_swap_and_replace_fields(self, db_session: Session, people: dict[str, Any], dataset: Any) -> None:
        schema = make_schema(
            db_session,
            dataset,
            [
                {"name": "Order ID", "data_type": FieldDataType.NUMBER},
                {"name": "email", "data_type": FieldDataType.EMAIL},
            ],
        )
        first, second = schema.fields
        service = SchemaService(db_session)

        swapped = service.swap_field_positions(
            people["owner"],
            dataset.id,
            first_field_id=first.id,
            second_field_id=second.id,
        )
        assert [item.name for item in swapped.fields] == ["email", "Order ID"]

        updated = service.update_schema(
            people["owner"],
            dataset.id,
            fields=[FieldDefinition(name="note", data_type=FieldDataType.STRING, position=0)],
        )
        assert [item.name for item in updated.fields] == ["note"]

        service.delete_schema(people["owner"], dataset.id)
        with pytest.raises(NotFoundError):
            service.get_schema(people["owner"], dataset.id)

    def test_infer_and_apply(self, db_session: Session, people: dict[str, Any], dataset: Any) -> None:
        service = SchemaService(db_session)

        inferred, created = service.infer_schema(people["owner"], dataset.id)
        assert created is None
        assert [(item.name, item.data_type) for item in inferred.fields] == [
            ("Order ID", FieldDataType.NUMBER),
            ("email", FieldDataType.EMAIL),
        ]

        _, created = service.infer_schema(people["owner"], dataset.id, apply=True)
        assert created is not None
        assert created.name == "orders_schema"
        assert [item.name for item in created.fields] == ["Order ID", "email"]
        assert created.fields[0].validation == {"min_value": 1.0, "max_value": 2.0}


# ---------------------------------------------------------------------------
# Business rules
# ---------------------------------------------------------------------------


class TestBusinessRules:
    @pytest.fixture()
    def dataset(self, db_session: Session, people: dict[str, Any]) -> Any:
        return make_dataset(db_session, people["project"], people["owner_user"])

    def test_admin_manages_rules(self, db_session: Session, people: dict[str, Any], dataset: Any) -> None:
        service = BusinessRuleService(db_session)

        rule = service.create_rule(
            people["admin"],
            dataset.id,
            rule_name="amount_range",
            rule_type=RuleType.RANGE_CHECK,
            rule_config={"field_name": "amount", "min_value": 0},
            error_message="Amount must not be negative.",
            priority=5,
        )
        service.update_rule(people["admin"], dataset.id, rule.id, changes={"is_active": False, "priority": None})

        assert service.list_rules(people["member"], dataset.id) == []
        listed = service.list_rules(people["member"], dataset.id, active_only=False)
        assert [(item.rule_name, item.priority, item.is_active) for item in listed] == [("amount_range", 5, False)]

        service.delete_rule(people["admin"], dataset.id, rule.id)
        assert service.list_rules(people["admin"], dataset.id, active_only=False) == []

    def test_non_admin_cannot_create(self, db_session: Session, people: dict[str, Any], dataset: Any) -> None:
        with pytest.raises(PermissionDeniedError):
            BusinessRuleService(db_session).create_rule(
                people["owner"],
                dataset.id,
                rule_name="r",
                rule_type=RuleType.REQUIRED,
                rule_config={"field_name": "a"},
                error_message="a is required",
            )

    def test_invalid_definition_is_rejected(self, db_session: Session, people: dict[str, Any], dataset: Any) -> None:
        service = BusinessRuleService(db_session)
        rule = service.create_rule(
            people["admin"],
            dataset.id,
            rule_name="r",
            rule_type=RuleType.REQUIRED,
            rule_config={"field_name": "a"},
            error_message="a is required",
        )

        with pytest.raises(RuleConfigError):
            service.update_rule(people["admin"], dataset.id, rule.id, changes={"rule_config": {}})
        with pytest.raises(NotFoundError):
            service.update_rule(people["admin"], people["project"].id, rule.id, changes={})
