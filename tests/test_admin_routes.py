import unittest

from tests.support import MarketplaceTestCase
from usanumbers.extensions import db
from usanumbers.models import User
from usanumbers.services.purchase_service import purchase_single


class TestAdminAccess(MarketplaceTestCase):

    def setUp(self):
        super().setUp()
        self.make_user("alice", credits="1.00")

    def test_admin_routes_reject_regular_users(self):
        for method, path in [
            ("get", "/api/admin/stats"),
            ("get", "/api/admin/users"),
            ("get", "/api/admin/numbers"),
            ("post", "/api/admin/add-credit"),
            ("post", "/api/admin/numbers/upload"),
            ("post", "/api/admin/numbers/delete-sold"),
            ("post", "/api/admin/settings/bulk-buy"),
        ]:
            resp = getattr(self.client, method)(path, json={}, headers=self.headers("alice"))
            self.assertEqual(resp.status_code, 403, path)
            self.assertEqual(resp.get_json()["message"], "Unauthorized")

    def test_admin_routes_require_token(self):
        resp = self.client.get("/api/admin/stats")
        self.assertEqual(resp.status_code, 401)

    def test_unknown_caller_is_not_admin(self):
        resp = self.client.get("/api/admin/stats", headers=self.headers("ghost"))
        self.assertEqual(resp.status_code, 403)


class TestAdminRoutes(MarketplaceTestCase):

    def setUp(self):
        super().setUp()
        self.make_user("root", role="admin", credits="0.00")
        self.make_user("alice", credits="1.00")
        self.admin = self.headers("root")

    def test_add_credit_writes_ledger_entry(self):
        resp = self.client.post("/api/admin/add-credit", json={
            "userId": "alice",
            "amount": 2.5,
            "notes": "promo",
        }, headers=self.admin)
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.get_json()["data"], {"newBalance": 3.5})
        self.assertBalance("alice", "3.50")

        entry = self.transactions("alice")[0]
        self.assertEqual(entry["type"], "credit_added")
        self.assertEqual(entry["amount"], 2.5)
        self.assertEqual(entry["payload"]["adminId"], "root")
        self.assertEqual(entry["payload"]["notes"], "promo")

    def test_add_credit_validation(self):
        for amount in (0, -5, "abc", None):
            resp = self.client.post("/api/admin/add-credit", json={"userId": "alice", "amount": amount},
                                    headers=self.admin)
            self.assertEqual(resp.status_code, 400, amount)
        resp = self.client.post("/api/admin/add-credit", json={"userId": "ghost", "amount": 1},
                                headers=self.admin)
        self.assertEqual(resp.status_code, 404)
        self.assertBalance("alice", "1.00")
        self.assertEqual(self.transactions(), [])

    def test_add_credit_rejects_oversized_amounts(self):
        for amount in ("1e30", 1e17):
            resp = self.client.post("/api/admin/add-credit", json={"userId": "alice", "amount": amount},
                                    headers=self.admin)
            self.assertEqual(resp.status_code, 400, amount)
            self.assertEqual(resp.get_json()["message"], "Invalid amount")
        resp = self.client.post("/api/admin/add-credit", json={"userId": ["alice"], "amount": 1},
                                headers=self.admin)
        self.assertEqual(resp.status_code, 400)
        self.assertBalance("alice", "1.00")
        self.assertEqual(self.transactions(), [])

    def test_repeated_credit_increments_do_not_drift(self):
        for _ in range(10):
            self.client.post("/api/admin/add-credit", json={"userId": "alice", "amount": 0.1},
                             headers=self.admin)
        self.assertBalance("alice", "2.00")

    def test_upload_skips_duplicates(self):
        self.make_number("+1 (618) 940-1793")
        resp = self.client.post("/api/admin/numbers/upload", json={
            "numbers": [
                {"phoneNumber": "+1 (618) 940-1793", "apiUrl": "https://sms222.us?token=a"},
                {"phoneNumber": "+1 (325) 238-7176", "apiUrl": "https://sms222.us?token=b"},
                {"phoneNumber": "+1 (325) 238-7176", "apiUrl": "https://sms222.us?token=c"},
                {"phoneNumber": "+1 (917) 555-0142", "apiUrl": "https://sms222.us?token=d"},
            ],
            "price": 0.45,
            "type": "SMS Only",
        }, headers=self.admin)
        self.assertEqual(resp.status_code, 200)
        body = resp.get_json()
        self.assertEqual(body["data"], {"added": 2, "skipped": 2})
        self.assertEqual(body["message"], "Added 2 numbers")

        resp = self.client.get("/api/admin/numbers?filter=available", headers=self.admin)
        uploaded = [n for n in resp.get_json()["data"] if n["type"] == "SMS Only"]
        self.assertEqual(len(uploaded), 2)
        self.assertTrue(all(n["price"] == 0.45 and n["addedBy"] == "root" for n in uploaded))

    def test_upload_uses_default_price(self):
        resp = self.client.post("/api/admin/numbers/upload", json={
            "numbers": [{"phoneNumber": "+1 (917) 555-0142"}],
        }, headers=self.admin)
        self.assertEqual(resp.get_json()["data"]["added"], 1)
        numbers = self.client.get("/api/numbers/available").get_json()["data"]
        self.assertEqual(numbers[0]["price"], 0.30)
        self.assertEqual(numbers[0]["type"], "SMS & Call")

    def test_upload_rejects_malformed_items(self):
        for items in (
            [{"phoneNumber": ["+1"]}],
            [{"phoneNumber": 16189401793}],
            [{"phoneNumber": "+1 (917) 555-0142", "apiUrl": {"url": "x"}}],
            ["+1 (917) 555-0142"],
        ):
            resp = self.client.post("/api/admin/numbers/upload", json={"numbers": items}, headers=self.admin)
            self.assertEqual(resp.status_code, 400, items)
        resp = self.client.post("/api/admin/numbers/upload", json={
            "numbers": [{"phoneNumber": "+1 (917) 555-0142"}],
            "price": "1e30",
        }, headers=self.admin)
        self.assertEqual(resp.status_code, 400)
        resp = self.client.get("/api/admin/numbers", headers=self.admin)
        self.assertEqual(resp.get_json()["data"], [])

    def test_upload_skips_items_without_phone_number(self):
        resp = self.client.post("/api/admin/numbers/upload", json={
            "numbers": [{"phoneNumber": ""}, {"apiUrl": "https://sms222.us?token=a"},
                        {"phoneNumber": "+1 (917) 555-0142"}],
        }, headers=self.admin)
        self.assertEqual(resp.get_json()["data"], {"added": 1, "skipped": 2})

    def test_delete_numbers_requires_id_list(self):
        number_id = self.make_number("+1 (618) 940-1793")
        for ids in ([{"id": number_id}], number_id, []):
            resp = self.client.post("/api/admin/numbers/delete", json={"numberIds": ids}, headers=self.admin)
            self.assertEqual(resp.status_code, 400, ids)
        self.assertEqual(self.status_of(number_id), "available")

    def test_list_numbers_filter(self):
        self.make_number("+1 (618) 940-1793")
        self.make_number("+1 (325) 238-7176", status="sold")
        resp = self.client.get("/api/admin/numbers?filter=sold", headers=self.admin)
        self.assertEqual([n["phoneNumber"] for n in resp.get_json()["data"]], ["+1 (325) 238-7176"])
        resp = self.client.get("/api/admin/numbers", headers=self.admin)
        self.assertEqual(len(resp.get_json()["data"]), 2)
        resp = self.client.get("/api/admin/numbers?filter=bogus", headers=self.admin)
        self.assertEqual(resp.status_code, 400)

    def test_delete_numbers_and_delete_sold(self):
        keep = self.make_number("+1 (618) 940-1793")
        drop = self.make_number("+1 (325) 238-7176")
        sold = self.make_number("+1 (917) 555-0142")
        with self.app.app_context():
            purchase_single("alice", sold)

        resp = self.client.post("/api/admin/numbers/delete", json={"numberIds": [drop, "missing"]},
                                headers=self.admin)
        self.assertEqual(resp.get_json()["data"], {"deleted": 1})

        resp = self.client.post("/api/admin/numbers/delete-sold", headers=self.admin)
        self.assertEqual(resp.get_json()["data"], {"deleted": 1})
        resp = self.client.post("/api/admin/numbers/delete-sold", headers=self.admin)
        self.assertEqual(resp.get_json()["message"], "No sold numbers found")

        remaining = self.client.get("/api/admin/numbers", headers=self.admin).get_json()["data"]
        self.assertEqual([n["id"] for n in remaining], [keep])
        # Ledger and ownership history survive the inventory cleanup
        self.assertEqual(len(self.transactions("alice")), 1)
        self.assertEqual(self.owned_numbers("alice"), ["+1 (917) 555-0142"])

    def test_update_number(self):
        number_id = self.make_number("+1 (618) 940-1793")
        resp = self.client.post("/api/admin/numbers/update", json={
            "numberId": number_id,
            "updates": {"price": 0.5, "type": "SMS Only"},
        }, headers=self.admin)
        self.assertEqual(resp.status_code, 200)
        data = resp.get_json()["data"]
        self.assertEqual(data["price"], 0.5)
        self.assertEqual(data["type"], "SMS Only")

    def test_update_number_refuses_status_and_duplicates(self):
        number_id = self.make_number("+1 (618) 940-1793", status="sold")
        self.make_number("+1 (325) 238-7176")
        resp = self.client.post("/api/admin/numbers/update", json={
            "numberId": number_id,
            "updates": {"status": "available"},
        }, headers=self.admin)
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(self.status_of(number_id), "sold")

        resp = self.client.post("/api/admin/numbers/update", json={
            "numberId": number_id,
            "updates": {"phoneNumber": "+1 (325) 238-7176"},
        }, headers=self.admin)
        self.assertEqual(resp.status_code, 409)

        resp = self.client.post("/api/admin/numbers/update", json={
            "numberId": "missing",
            "updates": {"type": "SMS Only"},
        }, headers=self.admin)
        self.assertEqual(resp.status_code, 404)

    def test_update_number_rejects_empty_values(self):
        number_id = self.make_number("+1 (618) 940-1793")
        for updates in ({"type": None}, {"phoneNumber": ""}, {"type": ["SMS"]}, {"apiUrl": 5}):
            resp = self.client.post("/api/admin/numbers/update", json={
                "numberId": number_id,
                "updates": updates,
            }, headers=self.admin)
            self.assertEqual(resp.status_code, 400, updates)
        resp = self.client.post("/api/admin/numbers/update", json={
            "numberId": number_id,
            "updates": {"apiUrl": None},
        }, headers=self.admin)
        self.assertEqual(resp.status_code, 200)
        self.assertIsNone(resp.get_json()["data"]["apiUrl"])

    def test_update_user_rejects_empty_values(self):
        for updates in ({"fullName": None}, {"status": ""}, {"fullName": {"first": "A"}}):
            resp = self.client.post("/api/admin/users/update", json={
                "userId": "alice",
                "updates": updates,
            }, headers=self.admin)
            self.assertEqual(resp.status_code, 400, updates)
        with self.app.app_context():
            self.assertEqual(db.session.get(User, "alice").full_name, "Alice")

    def test_update_user(self):
        resp = self.client.post("/api/admin/users/update", json={
            "userId": "alice",
            "updates": {"fullName": "Alice A.", "role": "admin"},
        }, headers=self.admin)
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.get_json()["data"]["fullName"], "Alice A.")
        with self.app.app_context():
            user = db.session.get(User, "alice")
            self.assertTrue(user.is_admin)
            self.assertEqual(user.updated_by, "root@example.com")

    def test_update_user_refuses_credits(self):
        resp = self.client.post("/api/admin/users/update", json={
            "userId": "alice",
            "updates": {"credits": 1000},
        }, headers=self.admin)
        self.assertEqual(resp.status_code, 400)
        self.assertBalance("alice", "1.00")

        resp = self.client.post("/api/admin/users/update", json={
            "userId": "alice",
            "updates": {"role": "superuser"},
        }, headers=self.admin)
        self.assertEqual(resp.status_code, 400)

    def test_delete_user_keeps_ledger(self):
        number_id = self.make_number("+1 (618) 940-1793")
        with self.app.app_context():
            purchase_single("alice", number_id)

        resp = self.client.post("/api/admin/users/delete", json={"userId": "alice"}, headers=self.admin)
        self.assertEqual(resp.status_code, 200)
        with self.app.app_context():
            self.assertIsNone(db.session.get(User, "alice"))
        self.assertEqual(len(self.transactions("alice")), 1)
        self.assertEqual(self.status_of(number_id), "sold")

        resp = self.client.post("/api/admin/users/delete", json={"userId": "alice"}, headers=self.admin)
        self.assertEqual(resp.status_code, 404)
        resp = self.client.post("/api/admin/users/delete", json={"userId": "root"}, headers=self.admin)
        self.assertEqual(resp.status_code, 403)

    def test_list_and_search_users(self):
        resp = self.client.get("/api/admin/users", headers=self.admin)
        users = resp.get_json()["data"]
        self.assertEqual({u["uid"] for u in users}, {"root", "alice"})
        self.assertTrue(all("purchasedNumbersCount" in u for u in users))

        resp = self.client.get("/api/admin/users?limit=1", headers=self.admin)
        self.assertEqual(len(resp.get_json()["data"]), 1)

        resp = self.client.get("/api/admin/users/search?email=alice@example.com", headers=self.admin)
        self.assertEqual(resp.get_json()["data"]["uid"], "alice")
        resp = self.client.get("/api/admin/users/search?email=nobody@example.com", headers=self.admin)
        self.assertEqual(resp.status_code, 404)
        resp = self.client.get("/api/admin/users/search", headers=self.admin)
        self.assertEqual(resp.status_code, 400)

    def test_stats(self):
        self.make_number("+1 (618) 940-1793")
        sold = self.make_number("+1 (325) 238-7176")
        with self.app.app_context():
            purchase_single("alice", sold)
        self.client.post("/api/admin/add-credit", json={"userId": "alice", "amount": 5},
                         headers=self.admin)

        data = self.client.get("/api/admin/stats", headers=self.admin).get_json()["data"]
        self.assertEqual(data["totalUsers"], 2)
        self.assertEqual(data["availableNumbers"], 1)
        self.assertEqual(data["soldNumbers"], 1)
        self.assertEqual(data["usersToday"], 2)
        self.assertEqual(data["numbersToday"], 2)
        self.assertEqual(data["soldToday"], 1)
        self.assertEqual(data["totalRevenue"], 0.30)
        self.assertEqual(data["revenueToday"], 0.30)

    def test_bulk_buy_settings(self):
        resp = self.client.get("/api/admin/settings/bulk-buy")
        self.assertEqual(resp.status_code, 200)
        defaults = resp.get_json()["data"]
        self.assertEqual(defaults["regularPrice"], 0.30)
        self.assertEqual(defaults["packages"]["package100"]["discount"], "-40%")

        settings = {"regularPrice": 0.35, "packages": {"package10": {"price": 3.0, "perNumber": 0.3}}}
        resp = self.client.post("/api/admin/settings/bulk-buy", json={"settings": settings},
                                headers=self.admin)
        self.assertEqual(resp.status_code, 200)

        data = self.client.get("/api/admin/settings/bulk-buy").get_json()["data"]
        self.assertEqual(data["regularPrice"], 0.35)
        self.assertEqual(data["updatedBy"], "root@example.com")

        resp = self.client.post("/api/admin/settings/bulk-buy", json={}, headers=self.admin)
        self.assertEqual(resp.status_code, 400)


if __name__ == '__main__':
    unittest.main()
