"""
VShield Registrar and Admin Operator Test Suite
"""

import unittest

from vshield import (
    AdminOperator,
    AuditLogger,
    Caller,
    ErrorCode,
    InMemoryAuditSink,
    InMemoryWhitelistStore,
    Registrar,
    StoreUnavailableError,
)

T = 1_700_000_000_000
DEFAULT_TTL = 7_200_000


class ReadOnlyStore(InMemoryWhitelistStore):
    def set(self, key, value, ttl_ms):
        raise StoreUnavailableError("read only")

    def delete(self, key):
        raise StoreUnavailableError("read only")


class TestRegistrar(unittest.TestCase):

    def setUp(self):
        self.now = T
        self.clock = lambda: self.now
        self.store = InMemoryWhitelistStore(clock=self.clock)
        self.sink = InMemoryAuditSink()
        self.registrar = Registrar(self.store, AuditLogger([self.sink]), clock=self.clock)
        self.caller = Caller(address="203.0.113.10", identity="alice@example.com")

    def test_register_self_uses_default_ttl(self):
        result = self.registrar.register_self(self.caller)

        self.assertTrue(result.ok)
        self.assertEqual(result.address, "203.0.113.10")
        self.assertEqual(result.ttl_ms, DEFAULT_TTL)
        self.assertEqual(self.store.get("203.0.113.10"), T + DEFAULT_TTL)

    def test_register_self_audit_record(self):
        result = self.registrar.register_self(self.caller)

        records = self.sink.query(action="register_self")
        self.assertEqual(len(records), 1)
        self.assertIs(records[0], result.record)
        self.assertEqual(records[0].actor, "alice@example.com")
        self.assertEqual(records[0].source_ip, "203.0.113.10")
        self.assertEqual(records[0].target_ip, "203.0.113.10")
        self.assertEqual(records[0].outcome, "ok")
        self.assertIn("action=register_self", result.record.render())
        self.assertIn("actor=alice@example.com", result.record.render())

    def test_register_self_missing_address(self):
        result = self.registrar.register_self(Caller(address=""))

        self.assertFalse(result.ok)
        self.assertTrue(result.client_error)
        self.assertEqual(result.error, ErrorCode.MISSING_SOURCE_ADDRESS)
        self.assertEqual(self.store.keys(), [])
        self.assertEqual(self.sink.query()[0].outcome, "error")

    def test_cancel_self_removes_entry(self):
        self.registrar.register_self(self.caller)

        result = self.registrar.cancel_self(self.caller)

        self.assertTrue(result.ok)
        self.assertIsNone(self.store.get("203.0.113.10"))
        self.assertEqual(self.sink.query(action="cancel_self")[0].target_ip, "203.0.113.10")

    def test_cancel_self_is_idempotent(self):
        first = self.registrar.cancel_self(self.caller)
        second = self.registrar.cancel_self(self.caller)

        self.assertTrue(first.ok)
        self.assertTrue(second.ok)

    def test_cancel_self_missing_address(self):
        result = self.registrar.cancel_self(Caller())
        self.assertEqual(result.error, ErrorCode.MISSING_SOURCE_ADDRESS)

    def test_missing_store(self):
        registrar = Registrar(None, AuditLogger([self.sink]), clock=self.clock)

        result = registrar.register_self(self.caller)

        self.assertEqual(result.error, ErrorCode.STORE_UNAVAILABLE)
        self.assertFalse(result.client_error)

    def test_store_failure_reported(self):
        registrar = Registrar(ReadOnlyStore(clock=self.clock), AuditLogger([self.sink]), clock=self.clock)

        self.assertEqual(registrar.register_self(self.caller).error, ErrorCode.STORE_UNAVAILABLE)
        self.assertEqual(registrar.cancel_self(self.caller).error, ErrorCode.STORE_UNAVAILABLE)
        self.assertEqual(len(self.sink.query(outcome="error")), 2)


class TestAdminOperator(unittest.TestCase):

    def setUp(self):
        self.now = T
        self.clock = lambda: self.now
        self.store = InMemoryWhitelistStore(clock=self.clock)
        self.sink = InMemoryAuditSink()
        self.admin = AdminOperator(self.store, AuditLogger([self.sink]), clock=self.clock)
        self.caller = Caller(address="10.0.0.2", identity="admin")

    def test_register_with_timeout(self):
        result = self.admin.register("192.0.2.8", "600000", self.caller)

        self.assertTrue(result.ok)
        self.assertEqual(self.store.get("192.0.2.8"), T + 600_000)
        record = self.sink.query(action="admin_register")[0]
        self.assertEqual(record.detail, "ttl_ms=600000")
        self.assertEqual(record.actor, "admin")
        self.assertEqual(record.source_ip, "10.0.0.2")
        self.assertEqual(record.target_ip, "192.0.2.8")
        self.assertIn("detail=ttl_ms=600000", record.render())

    def test_register_backing_ttl_matches_timeout(self):
        self.admin.register("192.0.2.8", 600_000, self.caller)
        self.now = T + 600_000
        self.assertIsNone(self.store.get("192.0.2.8"))

    def test_invalid_timeout_falls_back_to_default(self):
        for i, raw in enumerate(["abc", "", None, "0", "-5", "1.5", 0, -1, 2.5, True]):
            ip = f"192.0.2.{100 + i}"
            result = self.admin.register(ip, raw, self.caller)
            self.assertTrue(result.ok)
            self.assertEqual(result.ttl_ms, DEFAULT_TTL, raw)
            self.assertEqual(self.store.get(ip), T + DEFAULT_TTL, raw)

    def test_register_missing_target(self):
        for target in (None, "", "  "):
            result = self.admin.register(target, "600000", self.caller)
            self.assertEqual(result.error, ErrorCode.MISSING_TARGET_ADDRESS)
        self.assertEqual(self.store.keys(), [])

    def test_reregistration_extends_entry(self):
        self.admin.register("192.0.2.8", "600000", self.caller)
        self.now = T + 500_000
        self.admin.register("192.0.2.8", "600000", self.caller)
        self.assertEqual(self.store.get("192.0.2.8"), T + 1_100_000)

    def test_cancel(self):
        self.admin.register("192.0.2.8", None, self.caller)

        result = self.admin.cancel("192.0.2.8", self.caller)

        self.assertTrue(result.ok)
        self.assertIsNone(self.store.get("192.0.2.8"))
        self.assertEqual(self.sink.query(action="admin_cancel")[0].target_ip, "192.0.2.8")

    def test_cancel_absent_is_ok(self):
        self.assertTrue(self.admin.cancel("192.0.2.250", self.caller).ok)

    def test_cancel_missing_target(self):
        result = self.admin.cancel(None, self.caller)
        self.assertEqual(result.error, ErrorCode.MISSING_TARGET_ADDRESS)

    def test_list_skips_corrupted_entries(self):
        self.store.set("192.0.2.1", 1_700_000_010_000, 1_000_000)
        self.store.set("192.0.2.2", "not-a-number", 1_000_000)

        result = self.admin.list(self.caller)

        self.assertTrue(result.ok)
        self.assertEqual(result.to_list(), [
            {"ip": "192.0.2.1", "expireAt": "2023-11-14T22:13:30.000Z"},
        ])

    def test_oversized_timeout_falls_back_to_default(self):
        result = self.admin.register("192.0.2.8", "100000000000000000", self.caller)

        self.assertTrue(result.ok)
        self.assertEqual(result.ttl_ms, DEFAULT_TTL)
        self.assertEqual(self.store.get("192.0.2.8"), T + DEFAULT_TTL)

    def test_list_skips_unrenderable_instants(self):
        self.store.set("192.0.2.1", 1_700_000_010_000, 1_000_000)
        self.store.set("192.0.2.2", 100_000_000_000_000_000, 1_000_000)

        result = self.admin.list(self.caller)

        self.assertTrue(result.ok)
        self.assertEqual([r["ip"] for r in result.to_list()], ["192.0.2.1"])
        self.assertEqual(result.record.detail, "entries=1")

    def test_list_includes_every_numeric_entry(self):
        self.admin.register("192.0.2.2", "600000", self.caller)
        self.admin.register("192.0.2.1", None, self.caller)

        rows = self.admin.list(self.caller).to_list()

        self.assertEqual([r["ip"] for r in rows], ["192.0.2.1", "192.0.2.2"])
        self.assertTrue(all(r["expireAt"].endswith("Z") for r in rows))

    def test_list_missing_store(self):
        admin = AdminOperator(None, AuditLogger([self.sink]), clock=self.clock)

        result = admin.list(self.caller)

        self.assertEqual(result.error, ErrorCode.STORE_UNAVAILABLE)
        self.assertEqual(result.entries, [])


if __name__ == "__main__":
    unittest.main()
