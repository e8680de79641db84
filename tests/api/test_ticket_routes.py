"""/tickets and /dashboard endpoints."""

from datetime import datetime, timedelta, timezone

from helpdesk.models.models import BusinessType, Role


def _create(client, headers, description="Keyboard missing keys", **extra):
    resp = client.post("/tickets", json={"description": description, **extra}, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


class TestTicketRoutes:

    def test_create_and_list(self, client, tree, auth_headers):
        ticket = _create(client, auth_headers(tree.user1), ip_address="192.168.1.20")
        assert ticket["status"] == "pending"
        assert ticket["created_by"]["username"] == "user1"

        resp = client.get("/tickets", headers=auth_headers(tree.admin1))
        assert resp.status_code == 200
        assert [t["id"] for t in resp.json()["items"]] == [ticket["id"]]
        assert client.get("/tickets", headers=auth_headers(tree.admin2)).json()["items"] == []

    def test_invalid_ip_is_rejected(self, client, tree, auth_headers):
        resp = client.post(
            "/tickets", json={"description": "x", "ip_address": "999.1.1.1"}, headers=auth_headers(tree.user1)
        )
        assert resp.status_code == 422

    def test_admin_cannot_create(self, client, tree, auth_headers):
        resp = client.post("/tickets", json={"description": "x"}, headers=auth_headers(tree.admin1))
        assert resp.status_code == 403

    def test_close_and_reopen(self, client, tree, auth_headers):
        ticket = _create(client, auth_headers(tree.user1))
        url = f"/tickets/{ticket['id']}"

        resp = client.patch(f"{url}/close", json={"notes": ""}, headers=auth_headers(tree.tech1))
        assert resp.status_code == 400
        assert resp.json()["error"]["reason"] == "notes_required"

        resp = client.patch(f"{url}/close", json={"notes": "Replaced"}, headers=auth_headers(tree.admin1))
        assert resp.status_code == 403

        resp = client.patch(f"{url}/close", json={"notes": "Replaced"}, headers=auth_headers(tree.tech1))
        assert resp.status_code == 200
        assert resp.json()["status"] == "solved"

        solved = client.get("/tickets?status=solved", headers=auth_headers(tree.super1)).json()
        assert solved["pagination"]["total"] == 1

        resp = client.patch(f"{url}/reopen", headers=auth_headers(tree.user1))
        assert resp.status_code == 200
        assert resp.json()["status"] == "pending"
        assert resp.json()["notes"] == "Replaced"

    def test_put_ticket(self, client, tree, auth_headers):
        ticket = _create(client, auth_headers(tree.user1))
        resp = client.put(
            f"/tickets/{ticket['id']}", json={"device_name": "desk-7"}, headers=auth_headers(tree.tech1)
        )
        assert resp.status_code == 200
        assert resp.json()["device_name"] == "desk-7"

    def test_get_ticket_errors(self, client, tree, auth_headers):
        ticket = _create(client, auth_headers(tree.user1))
        assert client.get(f"/tickets/{ticket['id']}", headers=auth_headers(tree.tech2)).status_code == 403
        assert client.get("/tickets/424242", headers=auth_headers(tree.owner)).status_code == 404


class TestDashboardRoutes:

    def test_metrics(self, client, tree, auth_headers):
        _create(client, auth_headers(tree.user1))
        resp = client.get("/dashboard/metrics", headers=auth_headers(tree.super1))
        assert resp.status_code == 200
        metrics = resp.json()["metrics"]
        assert metrics["total_users"] == 4
        assert metrics["ticket_stats"]["pending_tickets"] == 1

    def test_role_gated_dashboards(self, client, tree, auth_headers):
        assert client.get("/dashboard/system-owner", headers=auth_headers(tree.admin1)).status_code == 403
        assert client.get("/dashboard/system-owner", headers=auth_headers(tree.owner)).status_code == 200
        assert client.get("/dashboard/admin", headers=auth_headers(tree.admin1)).status_code == 200
        assert client.get("/dashboard/it-person", headers=auth_headers(tree.user1)).status_code == 403

    def test_super_admin_dashboard(self, client, tree, auth_headers):
        resp = client.get("/dashboard/super-admin", headers=auth_headers(tree.super1))
        assert resp.status_code == 200
        info = resp.json()["dashboard"]["account_info"]
        assert info["business_type"] == "medium_business"
        assert info["account_limit"] == 700

    def test_expired_super_admin_is_locked_out(self, client, owner, make_account, auth_headers):
        sa = make_account(
            owner, Role.SUPER_ADMIN, "lapsed", business_type=BusinessType.SMALL,
            expiry_date=datetime.now(timezone.utc) - timedelta(hours=1),
        )
        resp = client.get("/dashboard/super-admin", headers=auth_headers(sa))
        assert resp.status_code == 401
        assert resp.json()["error"]["reason"] == "account_expired"
