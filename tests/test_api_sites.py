"""Sites endpoint tests."""

import pytest

from src.db import repository

pytestmark = pytest.mark.asyncio


async def _create(client, name="Site A", domain="a.com", **extra):
    resp = await client.post("/sites", json={"name": name, "domain": domain, **extra})
    assert resp.status_code == 201, resp.text
    return resp.json()


async def test_create_site_normalizes_domain(client):
    site = await _create(client, domain="HTTPS://Example.com/")

    assert site["domain"] == "example.com"
    assert site["crawlInterval"] == "1d"
    assert site["status"] == "active"
    assert site["lastCrawledAt"] is None
    assert site["errorMessage"] is None
    assert site["pageCount"] == 0
    assert set(site) >= {"id", "name", "createdAt", "updatedAt"}


async def test_create_site_with_interval(client):
    site = await _create(client, crawlInterval="12h")
    assert site["crawlInterval"] == "12h"


async def test_create_rejects_unknown_interval(client):
    resp = await client.post("/sites", json={"name": "A", "domain": "a.com", "crawlInterval": "5m"})
    assert resp.status_code == 400


async def test_create_with_empty_interval_uses_default(client):
    site = await _create(client, crawlInterval="")
    assert site["crawlInterval"] == "1d"


@pytest.mark.parametrize(
    "body",
    [
        {"domain": "a.com"},
        {"name": "A"},
        {"name": "", "domain": "a.com"},
        {"name": "A", "domain": ""},
    ],
)
async def test_create_requires_name_and_domain(client, body):
    resp = await client.post("/sites", json=body)
    assert resp.status_code == 400
    assert "detail" in resp.json()


async def test_create_rejects_domain_that_is_only_a_scheme(client):
    resp = await client.post("/sites", json={"name": "A", "domain": "https://"})
    assert resp.status_code == 400


async def test_create_duplicate_after_normalization(client):
    await _create(client, domain="a.com")

    resp = await client.post("/sites", json={"name": "Dup", "domain": "http://A.com/"})

    assert resp.status_code == 400
    assert resp.json()["detail"] == "This domain already exists"


async def test_list_sites_includes_page_counts(client, session):
    first = await _create(client, name="First", domain="first.com")
    second = await _create(client, name="Second", domain="second.com")
    await repository.insert_page(session, first["id"], "https://first.com/1", "1")
    await repository.insert_page(session, first["id"], "https://first.com/2", "2")

    resp = await client.get("/sites")

    assert resp.status_code == 200
    counts = {site["id"]: site["pageCount"] for site in resp.json()}
    assert counts == {first["id"]: 2, second["id"]: 0}


async def test_get_site(client):
    created = await _create(client)

    resp = await client.get(f"/sites/{created['id']}")

    assert resp.status_code == 200
    assert resp.json()["domain"] == "a.com"


async def test_get_missing_site(client):
    resp = await client.get("/sites/nope")
    assert resp.status_code == 404


async def test_update_site(client):
    created = await _create(client)

    resp = await client.put(
        f"/sites/{created['id']}",
        json={"name": "Renamed", "domain": "https://B.com/", "crawlInterval": "1w"},
    )

    assert resp.status_code == 200
    body = resp.json()
    assert body["name"] == "Renamed"
    assert body["domain"] == "b.com"
    assert body["crawlInterval"] == "1w"


async def test_partial_update_keeps_other_fields(client):
    created = await _create(client, crawlInterval="12h")

    resp = await client.put(f"/sites/{created['id']}", json={"name": "Only name"})

    body = resp.json()
    assert body["name"] == "Only name"
    assert body["domain"] == "a.com"
    assert body["crawlInterval"] == "12h"


async def test_update_with_empty_interval_keeps_stored_one(client):
    created = await _create(client, crawlInterval="12h")

    resp = await client.put(f"/sites/{created['id']}", json={"name": "B", "crawlInterval": ""})

    assert resp.status_code == 200
    assert resp.json()["name"] == "B"
    assert resp.json()["crawlInterval"] == "12h"


async def test_update_to_own_domain_is_allowed(client):
    created = await _create(client)

    resp = await client.put(f"/sites/{created['id']}", json={"domain": "A.COM"})

    assert resp.status_code == 200


async def test_update_domain_collision(client):
    await _create(client, name="A", domain="a.com")
    other = await _create(client, name="B", domain="b.com")

    resp = await client.put(f"/sites/{other['id']}", json={"domain": "http://a.com"})

    assert resp.status_code == 400
    assert resp.json()["detail"] == "This domain is already used by another site"


async def test_update_missing_site(client):
    resp = await client.put("/sites/nope", json={"name": "x"})
    assert resp.status_code == 404


async def test_delete_cascades_pages(client, session):
    site = await _create(client)
    await repository.insert_page(session, site["id"], "https://a.com/1", "1")
    await repository.insert_page(session, site["id"], "https://a.com/2", "2")

    resp = await client.delete(f"/sites/{site['id']}")

    assert resp.status_code == 200
    assert resp.json() == {"success": True}
    assert (await client.get(f"/sites/{site['id']}")).status_code == 404
    pages = (await client.get("/pages", params={"siteId": site["id"]})).json()
    assert pages["pages"] == []
    assert pages["total"] == 0


async def test_delete_missing_site(client):
    resp = await client.delete("/sites/nope")
    assert resp.status_code == 404
