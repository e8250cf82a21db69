from decimal import Decimal

from backoffice.models.activity_log import ActivityLog
from backoffice.models.affiliate import Affiliate
from backoffice.models.domain import Domain
from backoffice.models.order import PendingOrder
from backoffice.routers import auth as auth_router
from backoffice.utils.enums import DomainStatus, OrderStatus

from conftest import ADMIN_EMAIL, ADMIN_PASSWORD


# --- auth ---
def test_admin_routes_require_login(anon_client, factory):
    order = factory.order()
    resp = anon_client.get(f"/admin/orders/{order.id}")
    assert resp.status_code == 401
    assert resp.json()["success"] is False


def test_login_whoami_logout(anon_client, admin):
    resp = anon_client.post("/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD})
    assert resp.status_code == 200
    assert anon_client.get("/whoami").json() == {"user_id": admin.id, "role": "admin"}

    anon_client.get("/logout")
    assert anon_client.get("/whoami").json() == {"user_id": None, "role": None}


def test_login_rate_limit(anon_client, admin):
    for _ in range(auth_router.MAX_ATTEMPTS):
        resp = anon_client.post("/login", json={"email": ADMIN_EMAIL, "password": "wrong"})
        assert resp.status_code == 401

    resp = anon_client.post("/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD})
    assert resp.status_code == 429


def test_affiliate_user_cannot_login(anon_client, factory):
    factory.user(email="partner@example.com", password="pw")
    resp = anon_client.post("/login", json={"email": "partner@example.com", "password": "pw"})
    assert resp.status_code == 403


# --- orders ---
def test_order_detail(client, factory):
    shop = factory.template(price="20000")
    order = factory.order()
    item = factory.item(order, shop)
    factory.item(order, factory.tool(price="1500"), quantity=2)
    factory.domain(shop, "pick-me.com")

    data = client.get(f"/admin/orders/{order.id}").json()
    assert data["computed_amount"] == "23000.00"
    assert data["can_finalize"] is True
    assert data["items"][0]["id"] == item.id
    assert [d["domain_name"] for d in data["items"][0]["available_domains"]] == ["pick-me.com"]
    assert data["items"][1]["available_domains"] == []


def test_order_detail_not_found(client):
    resp = client.get("/admin/orders/9999")
    assert resp.status_code == 404
    assert resp.json() == {"success": False, "message": "Order not found."}


def test_finalize_endpoint(client, db, factory, mailer):
    shop = factory.template(price="20000")
    order = factory.order()
    item = factory.item(order, shop)
    d = factory.domain(shop)

    resp = client.post(f"/admin/orders/{order.id}/finalize", json={
        "amount_paid": "20000",
        "notes": "paid by transfer",
        "domain_assignments": [{"order_item_id": item.id, "domain_id": d.id}],
    })
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["success"] is True
    assert body["amount_paid"] == "20000.00"

    db.expire_all()
    assert db.get(PendingOrder, order.id).status == OrderStatus.PAID.value
    assert db.get(Domain, d.id).status == DomainStatus.IN_USE.value
    assert db.query(ActivityLog).filter(ActivityLog.action == "order_marked_paid").count() == 1
    mailer.send_order_confirmed.assert_called_once()

    again = client.post(f"/admin/orders/{order.id}/finalize", json={"amount_paid": "20000"})
    assert again.status_code == 409
    assert again.json()["success"] is False


def test_finalize_zero_amount(client, factory):
    order = factory.order()
    resp = client.post(f"/admin/orders/{order.id}/finalize", json={})
    assert resp.status_code == 400
    assert "Invalid order amount" in resp.json()["message"]


def test_cancel_endpoint(client, db, factory):
    order = factory.order()
    resp = client.post(f"/admin/orders/{order.id}/cancel", json={"reason": "duplicate"})
    assert resp.json()["success"] is True

    db.expire_all()
    assert db.get(PendingOrder, order.id).cancellation_reason == "duplicate"
    assert client.post(f"/admin/orders/{order.id}/cancel", json={}).status_code == 409


def test_bulk_endpoints(client, factory):
    ok = [factory.order(final_amount="1000") for _ in range(3)]
    done = [factory.order(status=OrderStatus.PAID.value, final_amount="1000") for _ in range(2)]

    resp = client.post("/admin/orders/bulk-finalize", json={"ids": [o.id for o in ok + done] + [0, 9999]})
    assert resp.json() == {"success_count": 3, "fail_count": 2}

    resp = client.post("/admin/orders/bulk-cancel", json={"ids": [o.id for o in ok]})
    assert resp.json() == {"success_count": 0, "fail_count": 3}


def test_update_paid_order_domains(client, factory):
    shop = factory.template()
    order = factory.order(status=OrderStatus.PAID.value)
    item = factory.item(order, shop)
    d = factory.domain(shop)

    resp = client.post(f"/admin/orders/{order.id}/domains", json={
        "notes": "domain set up",
        "domain_assignments": [{"order_item_id": item.id, "domain_id": d.id}],
    })
    assert resp.json() == {"success": True, "message": "Updated 2 item(s) successfully!"}


# --- domains ---
def test_domain_crud_endpoints(client, db, factory):
    shop = factory.template()

    resp = client.post("/admin/domains", json={"template_id": shop.id, "domain_name": "One.com"})
    domain_id = resp.json()["domain"]["id"]
    assert resp.json()["domain"]["domain_name"] == "one.com"

    resp = client.post("/admin/domains/bulk", json={"template_id": shop.id, "domain_list": "two.com\none.com"})
    assert resp.json()["added"] == 1
    assert len(resp.json()["errors"]) == 1

    avail = client.get("/admin/domains/available", params={"template_id": shop.id}).json()
    assert [d["domain_name"] for d in avail] == ["one.com", "two.com"]

    resp = client.post(f"/admin/domains/{domain_id}/edit",
                       json={"template_id": shop.id, "domain_name": "uno.com", "status": "suspended"})
    assert resp.json()["domain"]["status"] == "suspended"

    resp = client.post(f"/admin/domains/{domain_id}/delete")
    assert resp.json()["success"] is False
    assert resp.status_code == 409

    client.post(f"/admin/domains/{domain_id}/edit",
                json={"template_id": shop.id, "domain_name": "uno.com", "status": "available"})
    assert client.post(f"/admin/domains/{domain_id}/delete").json()["success"] is True
    db.expire_all()
    assert db.get(Domain, domain_id) is None


def test_assign_domain_endpoint(client, factory):
    shop = factory.template()
    d = factory.domain(shop)
    pending = factory.order(template_id=shop.id)
    paid = factory.order(status=OrderStatus.PAID.value)
    item = factory.item(paid, shop)

    resp = client.post(f"/admin/domains/{d.id}/assign", json={"order_id": pending.id})
    assert resp.status_code == 409

    resp = client.post(f"/admin/domains/{d.id}/assign",
                       json={"order_id": paid.id, "order_item_id": item.id})
    assert resp.json()["success"] is True


# --- affiliates / withdrawals ---
def test_affiliate_endpoints(client, db, factory):
    resp = client.post("/admin/affiliates", json={"email": "p@example.com", "password": "pw", "code": "promo99"})
    assert resp.status_code == 200, resp.text
    affiliate_id = resp.json()["affiliate"]["id"]
    assert resp.json()["affiliate"]["code"] == "PROMO99"

    bad = client.post("/admin/affiliates", json={"email": "q@example.com", "password": "pw", "code": "x"})
    assert bad.status_code == 400

    assert client.post(f"/admin/affiliates/{affiliate_id}/status", json={"status": "inactive"}).json()["success"]
    resp = client.post(f"/admin/affiliates/{affiliate_id}/commission-rate", json={"rate": "0.25"})
    assert resp.json()["success"] is True

    db.expire_all()
    a = db.get(Affiliate, affiliate_id)
    assert a.status == "inactive"
    assert a.custom_commission_rate == Decimal("0.25")

    detail = client.get(f"/admin/affiliates/{affiliate_id}").json()
    assert detail["balance_ok"] is True


def test_withdrawal_endpoints(client, db, factory, mailer):
    affiliate = factory.affiliate(earned="1000", pending="1000")

    resp = client.post(f"/admin/affiliates/{affiliate.id}/withdrawals",
                       json={"amount": "250", "bank_details": {"bank_name": "GTBank"}})
    req_id = resp.json()["id"]

    listed = client.get("/admin/withdrawals", params={"status": "pending"}).json()
    assert [w["id"] for w in listed] == [req_id]

    resp = client.post(f"/admin/withdrawals/{req_id}/process", json={"status": "paid", "notes": "done"})
    assert resp.json()["success"] is True
    mailer.send_withdrawal_processed.assert_called_once()

    db.expire_all()
    a = db.get(Affiliate, affiliate.id)
    assert a.commission_pending == Decimal("750.00")
    assert a.commission_paid == Decimal("250.00")

    again = client.post(f"/admin/withdrawals/{req_id}/process", json={"status": "rejected"})
    assert again.status_code == 409
