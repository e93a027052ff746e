"""Unit tests for docledger.registry.service — document lifecycle and authorization."""

import pytest

from docledger.engine.errors import (
    DocLedgerConfigError,
    DocLedgerSecurityError,
    DocLedgerValidationError,
)
from docledger.registry.models import AuthenticationReport, RegistryStatistics
from docledger.registry.results import Failure
from docledger.registry.service import DocumentRegistry

from tests.conftest import ADMIN, DEED, OWNER, STRANGER, VIEWER


def _record(registry, doc_id):
    with registry.store.transaction() as tx:
        return tx.get_document(doc_id)


class TestConstruction:
    def test_administrator_required(self, memory_store, height):
        with pytest.raises(DocLedgerConfigError):
            DocumentRegistry(store=memory_store, administrator="", height_provider=height)

    def test_unauthenticated_call_raises(self, registry):
        with pytest.raises(DocLedgerSecurityError, match="not authenticated"):
            registry.register(**DEED)


class TestRegister:
    def test_first_id_is_one(self, call):
        result = call(OWNER, "register", **DEED)
        assert result.ok
        assert result.value == 1

    def test_record_fields(self, call, registry, height):
        doc_id = call(OWNER, "register", **DEED).value
        record = _record(registry, doc_id)
        assert record.owner == OWNER
        assert record.title == "Deed 1"
        assert record.file_size == 500
        assert record.description == "desc"
        assert record.tags == ["land"]
        assert record.registration_block == height()

    def test_creator_gets_permission_entry(self, call, registry):
        doc_id = call(OWNER, "register", **DEED).value
        with registry.store.transaction() as tx:
            assert tx.get_permission(doc_id, OWNER) is True

    def test_ids_strictly_increase(self, call):
        ids = [call(OWNER if i % 2 else VIEWER, "register", **DEED).value for i in range(12)]
        assert ids == list(range(1, 13))

    def test_counter_equals_last_id(self, call):
        for _ in range(5):
            last = call(OWNER, "register", **DEED).value
        stats = call(ADMIN, "get_statistics").value
        assert stats.total == last == 5

    @pytest.mark.parametrize("size,failure", [
        (0, Failure.INVALID_VOLUME),
        (1_000_000_000, Failure.INVALID_VOLUME),
        (999_999_999, None),
    ])
    def test_file_size_boundaries(self, call, size, failure):
        result = call(OWNER, "register", **{**DEED, "file_size": size})
        assert result.failure == failure

    @pytest.mark.parametrize("override,failure", [
        ({"title": ""}, Failure.INVALID_TITLE),
        ({"title": "t" * 65}, Failure.INVALID_TITLE),
        ({"description": ""}, Failure.INVALID_TITLE),
        ({"description": "d" * 129}, Failure.INVALID_TITLE),
        ({"tags": []}, Failure.TAG_VALIDATION_FAILED),
        ({"tags": ["t"] * 11}, Failure.TAG_VALIDATION_FAILED),
        ({"tags": ["x" * 33]}, Failure.TAG_VALIDATION_FAILED),
    ])
    def test_invalid_fields(self, call, override, failure):
        assert call(OWNER, "register", **{**DEED, **override}).failure == failure

    def test_failed_register_leaves_no_trace(self, call, registry):
        call(OWNER, "register", **{**DEED, "file_size": 0})
        assert call(ADMIN, "get_statistics").value.total == 0
        assert _record(registry, 1) is None
        with registry.store.transaction() as tx:
            assert tx.get_permission(1, OWNER) is None

    def test_ids_not_reused_after_deregister(self, call):
        first = call(OWNER, "register", **DEED).value
        call(OWNER, "deregister", first)
        assert call(OWNER, "register", **DEED).value == first + 1


class TestUpdate:
    def test_owner_updates(self, call, registry, doc_id, height):
        height.advance(5)
        result = call(OWNER, "update", doc_id, "Deed 2", 900, "new desc", ["land", "farm"])
        assert result.ok and result.value is True

        record = _record(registry, doc_id)
        assert record.title == "Deed 2"
        assert record.file_size == 900
        assert record.description == "new desc"
        assert record.tags == ["land", "farm"]
        assert record.owner == OWNER
        assert record.registration_block == 100

    def test_identical_update_is_idempotent(self, call, registry, doc_id):
        before = _record(registry, doc_id)
        assert call(OWNER, "update", doc_id, **DEED).ok
        assert _record(registry, doc_id) == before

    def test_not_found(self, call):
        assert call(OWNER, "update", 42, **DEED).failure == Failure.NOT_FOUND

    def test_not_found_before_validation(self, call):
        result = call(OWNER, "update", 42, "", 0, "", [])
        assert result.failure == Failure.NOT_FOUND

    def test_ownership_before_validation(self, call, doc_id):
        result = call(STRANGER, "update", doc_id, "", 0, "", [])
        assert result.failure == Failure.OWNERSHIP_REQUIRED

    def test_invalid_fields_leave_record_unchanged(self, call, registry, doc_id):
        before = _record(registry, doc_id)
        result = call(OWNER, "update", doc_id, "Deed 2", 0, "desc", ["land"])
        assert result.failure == Failure.INVALID_VOLUME
        assert _record(registry, doc_id) == before


class TestDeregister:
    def test_owner_removes(self, call, registry, doc_id):
        assert call(OWNER, "deregister", doc_id).ok
        assert _record(registry, doc_id) is None

    def test_second_deregister_not_found(self, call, doc_id):
        call(OWNER, "deregister", doc_id)
        assert call(OWNER, "deregister", doc_id).failure == Failure.NOT_FOUND

    def test_counter_not_decremented(self, call, doc_id):
        call(OWNER, "deregister", doc_id)
        assert call(ADMIN, "get_statistics").value.total == 1

    def test_operations_after_deregister_not_found(self, call, doc_id):
        call(OWNER, "deregister", doc_id)
        assert call(OWNER, "authenticate", doc_id, OWNER).failure == Failure.NOT_FOUND
        assert call(OWNER, "freeze", doc_id).failure == Failure.NOT_FOUND
        assert call(OWNER, "extend_tags", doc_id, ["x"]).failure == Failure.NOT_FOUND


class TestReassignOwnership:
    def test_transfer(self, call, registry, doc_id):
        assert call(OWNER, "reassign_ownership", doc_id, VIEWER).ok
        record = _record(registry, doc_id)
        assert record.owner == VIEWER
        assert record.title == "Deed 1"
        assert record.registration_block == 100

    def test_previous_owner_loses_control(self, call, doc_id):
        call(OWNER, "reassign_ownership", doc_id, VIEWER)
        assert call(OWNER, "update", doc_id, **DEED).failure == Failure.OWNERSHIP_REQUIRED
        assert call(VIEWER, "update", doc_id, **DEED).ok

    def test_existing_permission_entries_kept(self, call, registry, doc_id):
        call(OWNER, "reassign_ownership", doc_id, VIEWER)
        with registry.store.transaction() as tx:
            assert tx.get_permission(doc_id, OWNER) is True
        # Former owner still counts as a viewer through the creator entry
        assert call(OWNER, "authenticate", doc_id, VIEWER).ok


class TestOwnershipRequired:
    @pytest.mark.parametrize("operation,args", [
        ("update", ("Deed 1", 500, "desc", ["land"])),
        ("deregister", ()),
        ("reassign_ownership", (STRANGER,)),
        ("extend_tags", (["x"],)),
        ("grant_access", (STRANGER,)),
        ("revoke_access", (OWNER,)),
        ("has_access", (OWNER,)),
    ])
    def test_non_owner_rejected(self, call, registry, doc_id, operation, args):
        before = _record(registry, doc_id)
        for principal in (STRANGER, VIEWER, ADMIN):
            result = call(principal, operation, doc_id, *args)
            assert result.failure == Failure.OWNERSHIP_REQUIRED
        assert _record(registry, doc_id) == before

    @pytest.mark.parametrize("operation,args", [
        ("update", ("Deed 1", 500, "desc", ["land"])),
        ("deregister", ()),
        ("reassign_ownership", (STRANGER,)),
        ("extend_tags", (["x"],)),
        ("grant_access", (STRANGER,)),
        ("revoke_access", (STRANGER,)),
        ("freeze", ()),
        ("authenticate", (OWNER,)),
        ("get_document", ()),
        ("has_access", (OWNER,)),
    ])
    def test_missing_doc_is_not_found_for_anyone(self, call, operation, args):
        for principal in (OWNER, STRANGER):
            assert call(principal, operation, 7, *args).failure == Failure.NOT_FOUND

    def test_non_integer_doc_id_not_found(self, call, doc_id):
        assert call(OWNER, "deregister", "1").failure == Failure.NOT_FOUND
        assert call(OWNER, "deregister", True).failure == Failure.NOT_FOUND

    @pytest.mark.parametrize("bad_id", [0, -1, 2**31, 2**63, 2**70])
    @pytest.mark.parametrize("operation,args", [
        ("update", ("t", 1, "d", ["x"])),
        ("deregister", ()),
        ("authenticate", (OWNER,)),
        ("freeze", ()),
        ("get_document", ()),
    ])
    def test_out_of_range_doc_id_not_found(self, call, doc_id, operation, args, bad_id):
        assert call(OWNER, operation, bad_id, *args).failure == Failure.NOT_FOUND
        assert call(OWNER, "get_document", doc_id).ok


class TestExtendTags:
    def test_appends(self, call, registry, doc_id):
        result = call(OWNER, "extend_tags", doc_id, ["farm", "north"])
        assert result.value == ["land", "farm", "north"]
        assert _record(registry, doc_id).tags == ["land", "farm", "north"]

    def test_associative(self, call):
        a = call(OWNER, "register", **DEED).value
        b = call(OWNER, "register", **DEED).value
        call(OWNER, "extend_tags", a, ["a", "b"])
        call(OWNER, "extend_tags", a, ["c"])
        call(OWNER, "extend_tags", b, ["a", "b", "c"])
        assert call(OWNER, "get_document", a).value.tags == call(OWNER, "get_document", b).value.tags

    def test_limit_of_ten(self, call, registry, doc_id):
        assert call(OWNER, "extend_tags", doc_id, ["t"] * 9).value == ["land"] + ["t"] * 9
        result = call(OWNER, "extend_tags", doc_id, ["one-too-many"])
        assert result.failure == Failure.TAG_VALIDATION_FAILED
        assert len(_record(registry, doc_id).tags) == 10

    def test_overflow_is_rejected_whole(self, call, registry, doc_id):
        result = call(OWNER, "extend_tags", doc_id, ["t"] * 10)
        assert result.failure == Failure.TAG_VALIDATION_FAILED
        assert _record(registry, doc_id).tags == ["land"]

    @pytest.mark.parametrize("tags", [[], ["x" * 33], [""], ["ok", ""]])
    def test_invalid_additional_tags(self, call, registry, doc_id, tags):
        assert call(OWNER, "extend_tags", doc_id, tags).failure == Failure.TAG_VALIDATION_FAILED
        assert _record(registry, doc_id).tags == ["land"]


class TestFreeze:
    def test_owner_and_admin_allowed(self, call, doc_id):
        assert call(OWNER, "freeze", doc_id).value is True
        assert call(ADMIN, "freeze", doc_id).value is True

    def test_others_admin_only(self, call, doc_id):
        assert call(STRANGER, "freeze", doc_id).failure == Failure.ADMIN_ONLY_OPERATION

    def test_no_effect_on_mutation(self, call, doc_id):
        call(ADMIN, "freeze", doc_id)
        assert call(OWNER, "update", doc_id, "Deed 9", 1, "d", ["x"]).ok


class TestAuthenticate:
    def test_owner_matches(self, call, doc_id, height):
        height.advance(25)
        report = call(OWNER, "authenticate", doc_id, OWNER).value
        assert isinstance(report, AuthenticationReport)
        assert report.match is True
        assert report.verified is True
        assert report.height == 125
        assert report.age == 25

    def test_wrong_presumed_owner(self, call, doc_id):
        report = call(OWNER, "authenticate", doc_id, STRANGER).value
        assert report.match is False
        assert report.verified is False
        assert report.age == 0

    def test_admin_allowed(self, call, doc_id):
        assert call(ADMIN, "authenticate", doc_id, OWNER).value.match is True

    def test_stranger_unauthorized(self, call, doc_id):
        assert call(STRANGER, "authenticate", doc_id, OWNER).failure == Failure.UNAUTHORIZED


class TestGetDocument:
    def test_owner_reads(self, call, doc_id):
        record = call(OWNER, "get_document", doc_id).value
        assert record.doc_id == doc_id
        assert record.title == "Deed 1"

    def test_copy_does_not_leak(self, call, registry, doc_id):
        record = call(OWNER, "get_document", doc_id).value
        record.tags.append("tampered")
        assert _record(registry, doc_id).tags == ["land"]

    def test_stranger_unauthorized(self, call, doc_id):
        assert call(STRANGER, "get_document", doc_id).failure == Failure.UNAUTHORIZED

    def test_admin_reads(self, call, doc_id):
        assert call(ADMIN, "get_document", doc_id).ok


class TestGetStatistics:
    def test_admin_only(self, call, doc_id):
        for principal in (OWNER, VIEWER, STRANGER):
            assert call(principal, "get_statistics").failure == Failure.ADMIN_ONLY_OPERATION

    def test_admin_only_on_empty_registry(self, call):
        assert call(OWNER, "get_statistics").failure == Failure.ADMIN_ONLY_OPERATION

    def test_values(self, call, height):
        call(OWNER, "register", **DEED)
        call(OWNER, "register", **DEED)
        height.advance(3)
        stats = call(ADMIN, "get_statistics").value
        assert isinstance(stats, RegistryStatistics)
        assert stats.total == 2
        assert stats.height == 103
        assert stats.status == "operational"

    def test_custom_status(self, memory_store, height):
        registry = DocumentRegistry(
            store=memory_store, administrator=ADMIN, height_provider=height,
            identity_provider=lambda: ADMIN, status="maintenance",
        )
        assert registry.get_statistics().value.status == "maintenance"


class TestUnwrap:
    def test_failures_raise_typed_errors(self, call, doc_id):
        with pytest.raises(DocLedgerSecurityError) as exc_info:
            call(STRANGER, "deregister", doc_id).unwrap(doc_id=doc_id)
        assert exc_info.value.failure_code == Failure.OWNERSHIP_REQUIRED.code
        assert exc_info.value.doc_id == doc_id

        with pytest.raises(DocLedgerValidationError):
            call(OWNER, "register", **{**DEED, "title": ""}).unwrap()
