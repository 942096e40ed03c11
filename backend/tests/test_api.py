"""Route tests for the /api/v1 surface."""

from decimal import Decimal

from ledgerlink.core.security import create_access_token
from ledgerlink.models.audit import ActionType, AuditEntry
from ledgerlink.models.inventory import InventoryItem
from ledgerlink.models.product import Product


def headers_for(user) -> dict:
    """Generate auth headers for a user."""
    token = create_access_token({"sub": str(user.id), "email": user.email, "role": user.role.value})
    return {"Authorization": f"Bearer {token}"}


class TestHealth:

    def test_health(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "healthy"


class TestAuthentication:

    def test_missing_token(self, client, bread):
        resp = client.get(f"/api/v1/recipes/{bread.id}")
        assert resp.status_code == 401

    def test_garbage_token(self, client, bread):
        resp = client.get(f"/api/v1/recipes/{bread.id}", headers={"Authorization": "Bearer nope"})
        assert resp.status_code == 401

    def test_inactive_user(self, client, db_session, manager, bread):
        headers = headers_for(manager)
        manager.is_active = False
        db_session.commit()

        resp = client.get(f"/api/v1/recipes/{bread.id}", headers=headers)
        assert resp.status_code == 401


class TestRecipeRoutes:

    def test_create_and_read_recipe(self, client, manager_headers, store_a, flour, vat_10, db_session):
        resp = client.post(
            "/api/v1/recipes/",
            json={
                "recipe_name": "Focaccia",
                "store_id": store_a.id,
                "ingredients": [{"inventory_item_id": flour.id, "quantity": "3"}],
                "is_on_sale": True,
                "vat_category_id": vat_10.id,
            },
            headers=manager_headers,
        )
        assert resp.status_code == 201
        recipe_id = resp.json()["recipe_id"]

        detail = client.get(f"/api/v1/recipes/{recipe_id}", headers=manager_headers).json()
        assert detail["name"] == "Focaccia"
        assert detail["product_id"] is not None

        product = db_session.get(Product, detail["product_id"])
        assert product.selling_price == Decimal("6.600")

    def test_on_sale_without_vat_is_400(self, client, manager_headers, store_a, flour):
        resp = client.post(
            "/api/v1/recipes/",
            json={"recipe_name": "Focaccia", "store_id": store_a.id, "is_on_sale": True},
            headers=manager_headers,
        )
        assert resp.status_code == 400

    def test_other_organization_gets_403(self, client, outsider, bread):
        resp = client.get(f"/api/v1/recipes/{bread.id}", headers=headers_for(outsider))
        assert resp.status_code == 403

    def test_unknown_recipe_is_404(self, client, manager_headers):
        assert client.get("/api/v1/recipes/999", headers=manager_headers).status_code == 404

    def test_actor_is_stamped_on_audit_entries(self, client, db_session, manager, manager_headers, bread):
        resp = client.put(
            f"/api/v1/recipes/{bread.id}",
            json={"recipe_name": "Sweet Loaf"},
            headers=manager_headers,
        )
        assert resp.status_code == 200

        entry = (
            db_session.query(AuditEntry)
            .filter(AuditEntry.entity_type == "Recipe", AuditEntry.action_type_id == int(ActionType.UPDATE))
            .one()
        )
        assert entry.user_id == manager.id


class TestProductRoutes:

    def test_store_listing(self, client, db_session, manager_headers, store_a, bread):
        db_session.add(Product(name="Sweet Bread", store_id=store_a.id, recipe_id=bread.id))
        db_session.commit()

        resp = client.get(f"/api/v1/products/store/{store_a.id}", headers=manager_headers)
        assert resp.status_code == 200
        [row] = resp.json()
        assert row["source"] == "Recipe"
        assert row["available_count"] == 2

    def test_availability(self, client, db_session, manager_headers, store_a, flour):
        product = Product(name="Flour bag", store_id=store_a.id, inventory_item_id=flour.id)
        db_session.add(product)
        db_session.commit()

        resp = client.get(f"/api/v1/products/{product.id}/availability", headers=manager_headers)
        assert resp.status_code == 200
        assert resp.json()["is_available"] is True

    def test_foreign_store_listing_is_403(self, client, manager_headers, foreign_store):
        resp = client.get(f"/api/v1/products/store/{foreign_store.id}", headers=manager_headers)
        assert resp.status_code == 403


class TestTransferRoutes:

    def _draft(self, client, headers, store_a, store_b, flour):
        resp = client.post(
            "/api/v1/transfers/",
            json={
                "from_store_id": store_a.id,
                "to_store_id": store_b.id,
                "items": [{"inventory_item_id": flour.id, "quantity": "4"}],
            },
            headers=headers,
        )
        assert resp.status_code == 201
        return resp.json()

    def test_full_flow(self, client, db_session, manager, employee, store_a, store_b, flour, org):
        employee_headers = headers_for(employee)
        manager_headers = headers_for(manager)
        draft = self._draft(client, employee_headers, store_a, store_b, flour)
        assert draft["status"] == "draft"

        sent = client.post(f"/api/v1/transfers/{draft['id']}/send", headers=employee_headers).json()
        assert sent["status"] == "pending"
        assert sent["requested_at"] is not None

        approved = client.post(
            f"/api/v1/transfers/{draft['id']}/approve",
            json={
                "new_driver_name": "Sam",
                "new_driver_email": "sam@example.com",
                "items": [{"inventory_item_id": flour.id, "quantity": "3"}],
            },
            headers=manager_headers,
        ).json()
        assert approved["status"] == "approved"
        assert approved["approved_by"] == manager.id
        assert approved["driver_id"] is not None

        delivered = client.post(f"/api/v1/transfers/{draft['id']}/deliver", headers=manager_headers)
        assert delivered.status_code == 200
        assert delivered.json()["delivered_at"] is not None
        assert (
            db_session.query(InventoryItem)
            .filter(InventoryItem.store_id == store_b.id)
            .one()
            .quantity
            == Decimal("3")
        )

        count = client.get(
            "/api/v1/transfers/count", params={"org_id": org.id}, headers=manager_headers
        ).json()
        assert count == {"org_id": org.id, "count": 1}

    def test_approve_draft_is_409(self, client, manager, store_a, store_b, flour):
        headers = headers_for(manager)
        draft = self._draft(client, headers, store_a, store_b, flour)
        resp = client.post(f"/api/v1/transfers/{draft['id']}/approve", json={}, headers=headers)
        assert resp.status_code == 409

    def test_employee_cannot_approve(self, client, employee, store_a, store_b, flour):
        headers = headers_for(employee)
        draft = self._draft(client, headers, store_a, store_b, flour)
        client.post(f"/api/v1/transfers/{draft['id']}/send", headers=headers)
        resp = client.post(f"/api/v1/transfers/{draft['id']}/approve", json={}, headers=headers)
        assert resp.status_code == 403

    def test_unknown_transfer_is_404(self, client, manager_headers):
        resp = client.post("/api/v1/transfers/999/reject", json={}, headers=manager_headers)
        assert resp.status_code == 404

    def test_foreign_store_is_403(self, client, manager_headers, store_a, foreign_store):
        resp = client.post(
            "/api/v1/transfers/",
            json={"from_store_id": store_a.id, "to_store_id": foreign_store.id, "items": []},
            headers=manager_headers,
        )
        assert resp.status_code == 403

    def test_count_of_other_organization_is_403(self, client, manager_headers, other_org):
        resp = client.get("/api/v1/transfers/count", params={"org_id": other_org.id}, headers=manager_headers)
        assert resp.status_code == 403


class TestReceiptRoutes:

    def test_receive_recipes(self, client, db_session, manager_headers, store_a, bread, flour):
        resp = client.post(
            "/api/v1/receipts/",
            json={"store_id": store_a.id, "recipes": [{"recipe_id": bread.id, "quantity": "1"}]},
            headers=manager_headers,
        )
        assert resp.status_code == 200
        assert resp.json() == {"success": True, "message": "Recipes received successfully."}
        assert db_session.get(InventoryItem, flour.id).quantity == Decimal("12")

    def test_items_and_recipes_in_one_request(self, client, db_session, manager_headers, store_b, bread, flour):
        resp = client.post(
            "/api/v1/receipts/",
            json={
                "store_id": store_b.id,
                "inventory_items": [{"inventory_item_id": flour.id, "quantity": "1"}],
                "recipes": [{"recipe_id": bread.id, "quantity": "1"}],
            },
            headers=manager_headers,
        )
        assert resp.status_code == 200
        [received] = (
            db_session.query(InventoryItem)
            .filter(InventoryItem.store_id == store_b.id, InventoryItem.name == "Flour")
            .all()
        )
        assert received.quantity == Decimal("3")

    def test_zero_quantity_is_refused(self, client, manager_headers, store_a, bread):
        resp = client.post(
            "/api/v1/receipts/",
            json={"store_id": store_a.id, "recipes": [{"recipe_id": bread.id, "quantity": "0"}]},
            headers=manager_headers,
        )
        assert resp.status_code == 400
        assert resp.json() == {"success": False, "message": f"Invalid quantity for recipe ID {bread.id}."}

    def test_empty_receipt(self, client, manager_headers, store_a):
        resp = client.post("/api/v1/receipts/", json={"store_id": store_a.id}, headers=manager_headers)
        assert resp.status_code == 400
        assert resp.json()["message"] == "No recipes provided."
