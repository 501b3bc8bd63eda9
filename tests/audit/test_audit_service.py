from __future__ import annotations

from datetime import datetime

import pytest

from lms_portal.audit.model import AuditEntry
from lms_portal.audit.service import AuditService, changed_fields, client_info
from lms_portal.core.enums import AuditAction, ResourceType


class InMemoryAuditLog:
    def __init__(self):
        self.entries: list[AuditEntry] = []
        self.last_query = None

    def add(self, *, user_id, action, resource_type, resource_id, ip_address, user_agent, metadata) -> int:
        log_id = len(self.entries) + 1
        self.entries.append(
            AuditEntry(log_id, user_id, action, resource_type, resource_id, ip_address, user_agent, datetime(2026, 3, 2), metadata)
        )
        return log_id

    def list_logs(self, **query):
        self.last_query = query
        return list(self.entries)


class BrokenAuditLog:
    def add(self, **kwargs):
        raise RuntimeError("database is locked")


@pytest.mark.parametrize(
    "headers,remote_addr,expected_ip",
    [
        ({"X-Forwarded-For": "203.0.113.9, 10.0.0.2", "X-Real-IP": "10.0.0.5"}, "127.0.0.1", "203.0.113.9"),
        ({"X-Real-IP": "10.0.0.5"}, "127.0.0.1", "10.0.0.5"),
        ({}, "127.0.0.1", "127.0.0.1"),
        (None, None, None),
    ],
)
def test_client_ip_prefers_forwarded_then_real_ip_then_socket(headers, remote_addr, expected_ip):
    assert client_info(headers, remote_addr)[0] == expected_ip


def test_client_info_returns_user_agent():
    assert client_info({"User-Agent": "pytest/8"}, "10.1.1.1") == ("10.1.1.1", "pytest/8")


def test_changed_fields_lists_only_differences():
    before = {"title": "Old", "price": 10, "category": None}
    after = {"title": "New", "price": 10, "slug": "new"}

    assert changed_fields(before, after) == {
        "slug": {"from": None, "to": "new"},
        "title": {"from": "Old", "to": "New"},
    }


def test_record_state_change_stores_changes_and_client():
    log = InMemoryAuditLog()
    service = AuditService(log)

    log_id = service.record_state_change(
        user_id=1,
        action=AuditAction.COURSE_UPDATE,
        resource_type=ResourceType.COURSE,
        resource_id=42,
        before={"status": "DRAFT", "title": "Stats"},
        after={"status": "PUBLISHED", "title": "Stats"},
        headers={"X-Forwarded-For": "198.51.100.4", "User-Agent": "curl/8"},
    )

    entry = log.entries[0]
    assert log_id == entry.log_id == 1
    assert entry.resource_id == "42"
    assert (entry.ip_address, entry.user_agent) == ("198.51.100.4", "curl/8")
    assert entry.metadata == {
        "changes": {"status": {"from": "DRAFT", "to": "PUBLISHED"}},
        "changed_fields": ["status"],
    }


def test_failed_write_is_swallowed():
    service = AuditService(BrokenAuditLog())

    assert service.record(user_id=1, action=AuditAction.USER_LOGIN, resource_type=ResourceType.USER, resource_id=1) is None


def test_list_logs_clamps_paging():
    log = InMemoryAuditLog()
    service = AuditService(log)

    service.list_logs(resource_id=5, limit=10_000, offset=-3)

    assert log.last_query["limit"] == 500
    assert log.last_query["offset"] == 0
    assert log.last_query["resource_id"] == "5"
    service.list_logs(limit=0)
    assert log.last_query["limit"] == 1
