from datetime import datetime, timedelta
from decimal import Decimal

from vendors_manager.models import ExchangeRate

API = "/api/exchange-rates"


async def test_currencies_are_listed(client, viewer_headers):
    response = await client.get("/api/currencies/", headers=viewer_headers)
    codes = [c["code"] for c in response.json()["data"]]
    assert codes[0] == "GBP"
    assert {"USD", "EUR"} <= set(codes)


async def test_upsert_replaces_pair(client, writer_headers):
    first = await client.put(f"{API}/", headers=writer_headers, json={
        "from_currency": "gbp", "to_currency": "usd", "rate": 1.25,
    })
    assert first.status_code == 200
    second = await client.put(f"{API}/", headers=writer_headers, json={
        "from_currency": "GBP", "to_currency": "USD", "rate": 1.3,
    })
    assert second.json()["data"]["id"] == first.json()["data"]["id"]
    assert second.json()["data"]["rate"] == 1.3
    assert second.json()["data"]["is_stale"] is False

    listed = await client.get(f"{API}/", headers=writer_headers)
    assert listed.json()["total"] == 1


async def test_unknown_code_and_same_pair(client, writer_headers):
    unknown = await client.put(f"{API}/", headers=writer_headers, json={
        "from_currency": "GBP", "to_currency": "XYZ", "rate": 2,
    })
    assert unknown.status_code == 400
    assert unknown.json()["error"] == "Invalid currency code: XYZ"

    same = await client.put(f"{API}/", headers=writer_headers, json={
        "from_currency": "GBP", "to_currency": "GBP", "rate": 1,
    })
    assert same.status_code == 400


async def test_stale_filter(client, session, viewer_headers):
    session.add_all([
        ExchangeRate(from_currency="GBP", to_currency="USD", rate=Decimal("1.25"), last_updated=datetime.utcnow()),
        ExchangeRate(
            from_currency="EUR", to_currency="GBP", rate=Decimal("0.85"),
            last_updated=datetime.utcnow() - timedelta(hours=30),
        ),
    ])
    await session.commit()
    response = await client.get(f"{API}/", headers=viewer_headers, params={"stale_only": True})
    data = response.json()["data"]
    assert [(r["from_currency"], r["to_currency"]) for r in data] == [("EUR", "GBP")]
    assert data[0]["stale_duration_hours"] >= 30


class TestConvert:
    async def test_inverse_conversion(self, client, session, viewer_headers):
        session.add(ExchangeRate(
            from_currency="EUR", to_currency="GBP", rate=Decimal("0.8"), last_updated=datetime.utcnow(),
        ))
        await session.commit()
        response = await client.post(f"{API}/convert", headers=viewer_headers, json={
            "amount": "100", "from_currency": "GBP", "to_currency": "EUR",
        })
        data = response.json()["data"]
        assert data["converted_amount"] == "125.00"
        assert data["formatted_converted"] == "€125.00"

    async def test_missing_rate(self, client, viewer_headers):
        response = await client.post(f"{API}/convert", headers=viewer_headers, json={
            "amount": "100", "from_currency": "USD", "to_currency": "JPY",
        })
        assert response.status_code == 404

    async def test_bad_amount(self, client, viewer_headers):
        response = await client.post(f"{API}/convert", headers=viewer_headers, json={
            "amount": "lots", "from_currency": "GBP", "to_currency": "GBP",
        })
        assert response.status_code == 400

    async def test_huge_amount(self, client, viewer_headers):
        response = await client.post(f"{API}/convert", headers=viewer_headers, json={
            "amount": "1e30", "from_currency": "GBP", "to_currency": "GBP",
        })
        assert response.status_code == 400
        assert response.json()["error"] == "Amount is too large to convert"
