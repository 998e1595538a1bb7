import pytest

from vendors_manager.models import DeliveryManagerVendor

API = "/api/reporting"
WEEK = "2024-06-03"


@pytest.fixture
async def assigned(session, writer, vendor):
    session.add(DeliveryManagerVendor(user_id=writer.id, vendor_id=vendor.id))
    await session.commit()


class TestVendorVisibility:
    async def test_unassigned_vendor_is_forbidden(self, client, writer_headers, vendor):
        listed = await client.get(f"{API}/vendors", headers=writer_headers)
        assert listed.json()["data"] == []

        response = await client.get(f"{API}/reports", headers=writer_headers, params={"vendor_id": vendor.id})
        assert response.status_code == 403
        assert response.json()["error"] == "You do not have access to this vendor"

    async def test_assigned_vendor_is_listed(self, client, writer_headers, vendor, assigned):
        listed = await client.get(f"{API}/vendors", headers=writer_headers)
        assert listed.json()["data"] == [{"id": vendor.id, "name": "Acme Digital", "status": "active"}]

    async def test_admin_sees_all_vendors(self, client, admin_headers, vendor):
        listed = await client.get(f"{API}/vendors", headers=admin_headers)
        assert listed.json()["total"] == 1


class TestWeeklyReport:
    async def test_draft_validate_submit(self, client, writer_headers, vendor, assigned):
        empty = await client.get(
            f"{API}/reports", headers=writer_headers, params={"vendor_id": vendor.id, "week_start": "2024-06-05"},
        )
        assert empty.json()["data"]["is_new"] is True
        assert empty.json()["data"]["week_start"] == WEEK

        saved = await client.put(f"{API}/reports", headers=writer_headers, json={
            "vendor_id": vendor.id, "week_start": "2024-06-05",
            "achievements": [{"description": "Released v2", "status": "done"}],
            "focus_items": [{"description": "Hardening"}],
        })
        assert saved.status_code == 200
        report = saved.json()["data"]
        assert report["week_start"] == WEEK
        assert report["vendor_name"] == "Acme Digital"
        assert report["status"] == "draft"

        check = await client.get(
            f"{API}/reports/validate", headers=writer_headers, params={"vendor_id": vendor.id, "week_start": WEEK},
        )
        assert check.json()["data"] == {
            "valid": False,
            "errors": [{"field": "rag_status", "message": "Overall status (RAG) is required"}],
            "warnings": [],
        }

        refused = await client.post(
            f"{API}/reports/submit", headers=writer_headers, json={"vendor_id": vendor.id, "week_start": WEEK},
        )
        assert refused.status_code == 400

        await client.put(f"{API}/reports", headers=writer_headers, json={
            "vendor_id": vendor.id, "week_start": WEEK, "rag_status": "green",
        })
        submitted = await client.post(
            f"{API}/reports/submit", headers=writer_headers, json={"vendor_id": vendor.id, "week_start": WEEK},
        )
        assert submitted.json()["data"]["status"] == "submitted"
        # lists not sent were kept
        assert [a["description"] for a in submitted.json()["data"]["achievements"]] == ["Released v2"]

        locked = await client.put(f"{API}/reports", headers=writer_headers, json={
            "vendor_id": vendor.id, "week_start": WEEK, "rag_status": "red",
        })
        assert locked.status_code == 400
        assert locked.json()["error"] == "Submitted reports cannot be edited"

        next_week = await client.get(
            f"{API}/reports", headers=writer_headers, params={"vendor_id": vendor.id, "week_start": "2024-06-10"},
        )
        assert [f["description"] for f in next_week.json()["data"]["previous_week_focus"]] == ["Hardening"]

        history = await client.get(f"{API}/reports/history", headers=writer_headers)
        assert history.json()["total"] == 1
        detail = await client.get(
            f"{API}/reports/history/{history.json()['data'][0]['id']}", headers=writer_headers,
        )
        assert detail.json()["data"]["rag_status"] == "green"

    async def test_viewer_cannot_save(self, client, viewer_headers, vendor):
        response = await client.put(f"{API}/reports", headers=viewer_headers, json={
            "vendor_id": vendor.id, "week_start": WEEK,
        })
        assert response.status_code == 403


class TestVendorItems:
    async def test_raid_log(self, client, writer_headers, vendor, assigned):
        base = f"{API}/vendors/{vendor.id}/raid"
        first = await client.post(base, headers=writer_headers, json={
            "type": "risk", "area": "Hiring", "description": "Two leavers", "impact": "high",
            "owner": "Sam", "rag_status": "amber",
        })
        assert first.status_code == 201
        assert first.json()["data"]["sort_order"] == 0
        second = await client.post(base, headers=writer_headers, json={
            "type": "issue", "area": "CI", "description": "Flaky builds", "impact": "low", "rag_status": "green",
        })
        assert second.json()["data"]["sort_order"] == 1

        item_id = first.json()["data"]["id"]
        updated = await client.put(f"{base}/{item_id}", headers=writer_headers, json={"owner": None, "area": None})
        assert updated.json()["data"]["owner"] is None
        assert updated.json()["data"]["area"] == "Hiring"

        deleted = await client.delete(f"{base}/{item_id}", headers=writer_headers)
        assert deleted.json()["message"] == "RAID item deleted"
        listed = await client.get(base, headers=writer_headers)
        assert [i["area"] for i in listed.json()["data"]] == ["CI"]

    async def test_item_of_another_vendor_is_not_found(self, client, admin_headers, vendor):
        created = await client.post(f"{API}/vendors/{vendor.id}/timeline", headers=admin_headers, json={
            "date": "Q3 2024", "title": "Beta", "status": "upcoming", "platforms": ["ios"],
        })
        response = await client.delete(
            f"{API}/vendors/999/timeline/{created.json()['data']['id']}", headers=admin_headers,
        )
        assert response.status_code == 404

    async def test_resource_url_must_be_http(self, client, admin_headers, vendor):
        response = await client.post(f"{API}/vendors/{vendor.id}/resources", headers=admin_headers, json={
            "type": "docs", "name": "Runbook", "url": "ftp://example.com/runbook",
        })
        assert response.status_code == 400
