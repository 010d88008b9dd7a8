"""Unit tests for models and digest helpers."""

import hashlib
from datetime import UTC, datetime

import pytest
from pydantic import ValidationError

from zonekeeper.crypto import account_id
from zonekeeper.models import (
    DnsRecord,
    Outcome,
    PageCursor,
    PageResult,
    StoreSnapshot,
    Zone,
)


class TestProviderResources:
    def test_zone_keeps_provider_fields(self):
        zone = Zone.model_validate({"id": "z1", "name": "example.com", "status": "active"})
        assert zone.model_extra == {"status": "active"}

    def test_zone_frozen(self):
        zone = Zone(id="z1", name="example.com")
        with pytest.raises(ValidationError):
            zone.name = "other.test"

    def test_record_extras_survive_copy(self):
        record = DnsRecord.model_validate(
            {"id": "r1", "type": "TXT", "name": "x", "content": "old", "proxied": False}
        )
        updated = record.model_copy(update={"content": "new"})
        assert updated.model_dump()["proxied"] is False
        assert updated.id == "r1"

    def test_cursor_rejects_page_zero(self):
        with pytest.raises(ValidationError):
            PageCursor(page=0)

    def test_page_result_without_result_info(self):
        page = PageResult.model_validate({"success": True, "result": [{"id": "z1"}]})
        assert page.result_info is None
        assert page.errors == []


class TestOutcome:
    def test_success(self):
        outcome = Outcome.success(3)
        assert outcome.ok
        assert outcome.value == 3

    def test_failure(self):
        error = RuntimeError("boom")
        outcome = Outcome.failure(error)
        assert not outcome.ok
        assert outcome.error is error


class TestStoreSnapshot:
    def test_dumps_with_persisted_field_names(self):
        snapshot = StoreSnapshot(last_update=datetime(2024, 1, 2, tzinfo=UTC))
        data = snapshot.model_dump(by_alias=True)
        assert set(data) == {
            "accountIndices",
            "accountKeypairs",
            "accounts",
            "certIndices",
            "certificateKeypairs",
            "certificates",
            "accountCerts",
            "_lastUpdate",
        }

    def test_ignores_unknown_top_level_keys(self):
        snapshot = StoreSnapshot.model_validate({"accounts": {}, "legacy": 1})
        assert snapshot.accounts == {}


def test_account_id_is_hex_sha256_of_pem():
    pem = "-----BEGIN PUBLIC KEY-----\nMIIB\n-----END PUBLIC KEY-----\n"
    assert account_id(pem) == hashlib.sha256(pem.encode()).hexdigest()
    assert len(account_id(pem)) == 64
