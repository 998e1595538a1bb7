from datetime import date, timedelta
from decimal import Decimal

import pytest

from vendors_manager.models import TeamMember, TimesheetEntry


class TestVendors:
    async def test_create_with_tags_and_filter(self, client, writer_headers):
        created = await client.post("/api/vendors/", headers=writer_headers, json={
            "name": "Northwind", "location": "Leeds", "tags": ["mobile", " web ", "mobile", ""],
        })
        assert created.status_code == 201
        assert [t["name"] for t in created.json()["data"]["tags"]] == ["mobile", "web"]

        await client.post("/api/vendors/", headers=writer_headers, json={"name": "Southwind", "tags": ["web"]})

        tagged = await client.get("/api/vendors/", headers=writer_headers, params={"tag": "mobile"})
        assert [v["name"] for v in tagged.json()["data"]] == ["Northwind"]
        assert tagged.json()["total"] == 1

        tags = await client.get("/api/vendors/tags", headers=writer_headers)
        assert [t["name"] for t in tags.json()["data"]] == ["mobile", "web"]

    async def test_update_replaces_tags(self, client, writer_headers, vendor):
        response = await client.put(f"/api/vendors/{vendor.id}", headers=writer_headers, json={"tags": ["data"]})
        assert [t["name"] for t in response.json()["data"]["tags"]] == ["data"]
        assert response.json()["data"]["name"] == "Acme Digital"

    async def test_null_required_fields_are_ignored(self, client, writer_headers, vendor):
        response = await client.put(
            f"/api/vendors/{vendor.id}", headers=writer_headers,
            json={"name": None, "status": None, "location": None},
        )
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["name"] == "Acme Digital"
        assert data["status"] == "active"
        assert data["location"] is None

    async def test_search_and_stats(self, client, viewer_headers, vendor):
        found = await client.get("/api/vendors/", headers=viewer_headers, params={"search": "Lond"})
        assert found.json()["total"] == 1
        stats = await client.get("/api/vendors/stats", headers=viewer_headers)
        assert stats.json()["data"]["active_vendors"] == 1

    async def test_missing_vendor(self, client, viewer_headers):
        response = await client.get("/api/vendors/999", headers=viewer_headers)
        assert response.status_code == 404
        assert response.json() == {"success": False, "error": "Vendor not found"}

    async def test_blank_name_is_rejected(self, client, writer_headers):
        response = await client.post("/api/vendors/", headers=writer_headers, json={"name": ""})
        assert response.status_code == 400
        assert response.json()["details"][0]["field"] == "name"


class TestContracts:
    def payload(self, vendor_id, **overrides):
        today = date.today()
        data = {
            "vendor_id": vendor_id, "title": "Delivery SOW", "value": 120000, "currency": "usd",
            "start_date": str(today - timedelta(days=30)), "end_date": str(today + timedelta(days=10)),
        }
        data.update(overrides)
        return data

    async def test_lifecycle(self, client, writer_headers, vendor):
        created = await client.post("/api/contracts/", headers=writer_headers, json=self.payload(vendor.id))
        assert created.status_code == 201
        contract = created.json()["data"]
        assert contract["status"] == "draft"
        assert contract["currency"] == "USD"
        assert contract["vendor_name"] == "Acme Digital"
        assert contract["days_until_expiration"] == 10
        assert contract["expiration_status"] == "expiring_soon"

        activated = await client.post(f"/api/contracts/{contract['id']}/activate", headers=writer_headers)
        assert activated.json()["data"]["status"] == "active"
        again = await client.post(f"/api/contracts/{contract['id']}/activate", headers=writer_headers)
        assert again.json()["error"] == "Only draft contracts can be activated"

        expiring = await client.get("/api/contracts/expiring", headers=writer_headers, params={"days": 30})
        assert [c["id"] for c in expiring.json()["data"]] == [contract["id"]]

        terminated = await client.post(f"/api/contracts/{contract['id']}/terminate", headers=writer_headers)
        assert terminated.json()["data"]["status"] == "terminated"
        again = await client.post(f"/api/contracts/{contract['id']}/terminate", headers=writer_headers)
        assert again.status_code == 400

    async def test_active_contract_past_end_is_created_expired(self, client, writer_headers, vendor):
        past = date.today() - timedelta(days=1)
        response = await client.post("/api/contracts/", headers=writer_headers, json=self.payload(
            vendor.id, status="active", start_date=str(past - timedelta(days=90)), end_date=str(past),
        ))
        assert response.json()["data"]["status"] == "expired"

    async def test_end_before_start(self, client, writer_headers, vendor):
        response = await client.post("/api/contracts/", headers=writer_headers, json=self.payload(
            vendor.id, start_date="2024-06-01", end_date="2024-05-01",
        ))
        assert response.status_code == 400
        assert response.json()["error"] == "Validation failed"

    async def test_unknown_vendor(self, client, writer_headers):
        response = await client.post("/api/contracts/", headers=writer_headers, json=self.payload(999))
        assert response.status_code == 404


class TestInvoices:
    @pytest.fixture
    async def timesheet(self, session, vendor, role):
        member = TeamMember(
            first_name="Ada", last_name="Lovelace", email="ada@example.com", vendor_id=vendor.id,
            role_id=role.id, daily_rate=Decimal("500"), start_date=date(2024, 1, 1),
        )
        session.add(member)
        await session.flush()
        session.add_all([
            TimesheetEntry(team_member_id=member.id, date=date(2024, 3, d), hours=Decimal("8")) for d in (4, 5, 6, 7)
        ])
        await session.commit()
        return member

    def payload(self, vendor_id, **overrides):
        data = {
            "vendor_id": vendor_id, "invoice_number": "INV-2024-03", "invoice_date": "2024-04-02",
            "billing_period_start": "2024-03-01", "billing_period_end": "2024-03-31", "amount": 2050,
        }
        data.update(overrides)
        return data

    async def test_validate_against_timesheets(self, client, writer_headers, vendor, timesheet):
        created = await client.post("/api/invoices/", headers=writer_headers, json=self.payload(vendor.id))
        assert created.status_code == 201
        invoice_id = created.json()["data"]["id"]
        assert created.json()["data"]["validation_status"] == "not_validated"

        response = await client.post(f"/api/invoices/{invoice_id}/validate", headers=writer_headers)
        result = response.json()["data"]
        assert result["tolerance"] == {
            "invoice_amount": 2050.0, "expected_amount": 2000.0, "discrepancy": 50.0,
            "discrepancy_percent": 2.5, "tolerance_threshold": 5.0, "is_within_tolerance": True,
        }
        assert result["breakdown"][0]["team_member_name"] == "Ada Lovelace"
        assert result["breakdown"][0]["total_hours"] == 32.0

        strict = await client.post(
            f"/api/invoices/{invoice_id}/validate", headers=writer_headers, json={"tolerance_threshold": 1},
        )
        assert strict.json()["data"]["tolerance"]["is_within_tolerance"] is False

        invoice = await client.get(f"/api/invoices/{invoice_id}", headers=writer_headers)
        assert invoice.json()["data"]["validation_status"] == "exceeds_tolerance"
        assert invoice.json()["data"]["expected_amount"] == 2000.0

    async def test_duplicate_number(self, client, writer_headers, vendor):
        await client.post("/api/invoices/", headers=writer_headers, json=self.payload(vendor.id))
        response = await client.post("/api/invoices/", headers=writer_headers, json=self.payload(vendor.id))
        assert response.status_code == 409
        assert response.json()["error"] == "An invoice with this number already exists"

    async def test_tolerance_check_is_stateless(self, client, viewer_headers):
        response = await client.post("/api/invoices/tolerance-check", headers=viewer_headers, json={
            "invoice_amount": 900, "expected_amount": 1000, "tolerance_threshold": 5,
        })
        data = response.json()["data"]
        assert data["discrepancy"] == -100.0
        assert data["discrepancy_percent"] == -10.0
        assert data["is_within_tolerance"] is False

    async def test_period_must_be_ordered(self, client, writer_headers, vendor):
        created = await client.post("/api/invoices/", headers=writer_headers, json=self.payload(vendor.id))
        response = await client.put(
            f"/api/invoices/{created.json()['data']['id']}", headers=writer_headers,
            json={"billing_period_end": "2024-02-01"},
        )
        assert response.status_code == 400
