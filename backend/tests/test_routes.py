"""
HTTP Endpoint Tests
"""

import pytest
from httpx import AsyncClient

from content_admin.config import settings

SUBCATEGORY = {
    "title_en": "Contracts",
    "title_ar": "العقود",
    "content_en": "Formation and breach",
    "content_ar": "التكوين والإخلال",
}


async def create_category(client: AsyncClient, title: str) -> dict:
    response = await client.post("/api/categories/", json={"title_en": title, "title_ar": title})
    assert response.status_code == 201
    return response.json()


@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    response = await client.get("/api/health")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "cache": False}


@pytest.mark.asyncio
async def test_category_scenario(client: AsyncClient):
    law = await create_category(client, "Law")
    framework = await create_category(client, "Framework")
    crimes = await create_category(client, "Crimes")
    assert [law["order"], framework["order"], crimes["order"]] == [1, 2, 3]

    response = await client.post(f"/api/categories/{crimes['id']}/move-up")
    assert response.status_code == 200
    assert response.json() == {"moved": True}

    listing = (await client.get("/api/categories/")).json()
    assert listing["total"] == 3
    assert [(c["title_en"], c["order"]) for c in listing["categories"]] == [
        ("Law", 1), ("Crimes", 2), ("Framework", 3)
    ]


@pytest.mark.asyncio
async def test_move_at_boundary_reports_not_moved(client: AsyncClient):
    law = await create_category(client, "Law")

    response = await client.post(f"/api/categories/{law['id']}/move-up", json={"current_order": 1})

    assert response.status_code == 200
    assert response.json() == {"moved": False}


@pytest.mark.asyncio
async def test_category_validation_and_not_found(client: AsyncClient):
    response = await client.post("/api/categories/", json={"title_en": "Law", "color_hex": "green"})
    assert response.status_code == 422

    response = await client.post("/api/categories/", json={"title_en": ""})
    assert response.status_code == 422

    assert (await client.get("/api/categories/999")).status_code == 404
    assert (await client.post("/api/categories/999/move-down")).status_code == 404
    assert (await client.put("/api/categories/999", json={"title_en": "X"})).status_code == 404


@pytest.mark.asyncio
async def test_update_category(client: AsyncClient):
    law = await create_category(client, "Law")

    response = await client.put(f"/api/categories/{law['id']}", json={"color_hex": "#112233"})

    assert response.status_code == 200
    data = response.json()
    assert data["color_hex"] == "#112233"
    assert data["title_en"] == "Law"
    assert data["order"] == 1


@pytest.mark.asyncio
async def test_reorder_categories(client: AsyncClient):
    a = await create_category(client, "A")
    b = await create_category(client, "B")

    response = await client.post("/api/categories/reorder", json={"ids": [b["id"], a["id"]]})
    assert response.status_code == 200
    assert [(c["title_en"], c["order"]) for c in response.json()["categories"]] == [("B", 1), ("A", 2)]

    response = await client.post("/api/categories/reorder", json={"ids": [a["id"]]})
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_subcategories_and_cascade_delete(client: AsyncClient):
    x = await create_category(client, "X")
    y = await create_category(client, "Y")
    for title in ("S1", "S2"):
        response = await client.post(
            f"/api/categories/{x['id']}/subcategories", json={**SUBCATEGORY, "title_en": title}
        )
        assert response.status_code == 201
    t1 = (await client.post(f"/api/categories/{y['id']}/subcategories", json=SUBCATEGORY)).json()

    listing = (await client.get(f"/api/categories/{x['id']}/subcategories")).json()
    assert [(s["title_en"], s["order"]) for s in listing["subcategories"]] == [("S1", 1), ("S2", 2)]

    response = await client.delete(f"/api/categories/{x['id']}")
    assert response.status_code == 204

    assert (await client.get(f"/api/categories/{x['id']}/subcategories")).status_code == 404
    remaining = (await client.get(f"/api/categories/{y['id']}/subcategories")).json()
    assert [(s["id"], s["order"]) for s in remaining["subcategories"]] == [(t1["id"], 1)]


@pytest.mark.asyncio
async def test_subcategory_moves_and_category_check(client: AsyncClient):
    x = await create_category(client, "X")
    y = await create_category(client, "Y")
    s1 = (await client.post(f"/api/categories/{x['id']}/subcategories", json={**SUBCATEGORY, "title_en": "S1"})).json()
    s2 = (await client.post(f"/api/categories/{x['id']}/subcategories", json={**SUBCATEGORY, "title_en": "S2"})).json()

    response = await client.post(f"/api/subcategories/{s2['id']}/move-up", json={"category_id": y["id"]})
    assert response.status_code == 400

    response = await client.post(
        f"/api/subcategories/{s1['id']}/move-down",
        json={"category_id": x["id"], "current_order": 1, "max_order": 2},
    )
    assert response.json() == {"moved": True}
    assert (await client.get(f"/api/subcategories/{s1['id']}")).json()["order"] == 2


@pytest.mark.asyncio
async def test_subcategory_requires_bilingual_fields(client: AsyncClient):
    x = await create_category(client, "X")

    response = await client.post(
        f"/api/categories/{x['id']}/subcategories", json={**SUBCATEGORY, "title_ar": ""}
    )

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_glossary_routes(client: AsyncClient):
    tort = (await client.post("/api/glossary/", json={"term": "Tort", "definition": "A civil wrong"})).json()
    await client.post("/api/glossary/", json={"term": "Contract", "definition": "A binding promise"})

    response = await client.get("/api/glossary/lookup", params={"name": "tort"})
    assert response.status_code == 200
    assert response.json()["id"] == tort["id"]
    assert (await client.get("/api/glossary/lookup", params={"name": "Equity"})).status_code == 404

    response = await client.post("/api/glossary/links", json={"text": "{Contract} vs {Tort} vs {Equity}"})
    data = response.json()
    assert [term["term"] for term in data["linked"]] == ["Contract", "Tort"]
    assert data["unresolved"] == ["Equity"]

    assert (await client.post(f"/api/glossary/{tort['id']}/move-down")).json() == {"moved": True}
    terms = (await client.get("/api/glossary/")).json()["terms"]
    assert [t["term"] for t in terms] == ["Contract", "Tort"]


@pytest.mark.asyncio
async def test_diagram_upload_and_delete(client: AsyncClient):
    response = await client.post(
        "/api/diagrams/",
        data={"title": "Court structure", "title_ar": "هيكل المحاكم"},
        files={"image": ("courts.png", b"\x89PNG fake", "image/png")},
    )
    assert response.status_code == 201
    diagram = response.json()
    assert diagram["image_url"].startswith("/media/diagrams/")

    served = await client.get(diagram["image_url"])
    assert served.status_code == 200
    assert served.content == b"\x89PNG fake"

    assert (await client.delete(f"/api/diagrams/{diagram['id']}")).status_code == 204
    assert (await client.get(f"/api/diagrams/{diagram['id']}")).status_code == 404


@pytest.mark.asyncio
async def test_template_rejects_non_pdf(client: AsyncClient):
    response = await client.post(
        "/api/templates/",
        data={"title": "NDA"},
        files={"pdf": ("nda.docx", b"PK fake", "application/vnd.openxmlformats-officedocument.wordprocessingml.document")},
    )
    assert response.status_code == 400

    response = await client.post("/api/templates/", data={"title": "NDA"})
    assert response.status_code == 400
    assert (await client.get("/api/templates/")).json()["total"] == 0


@pytest.mark.asyncio
async def test_admin_key_guards_mutations(client: AsyncClient, monkeypatch):
    monkeypatch.setattr(settings, "admin_api_key", "s3cret")

    assert (await client.post("/api/categories/", json={"title_en": "Law"})).status_code == 403
    assert (await client.post(
        "/api/categories/", json={"title_en": "Law"}, headers={"X-Admin-Key": "wrong"}
    )).status_code == 403

    response = await client.post("/api/categories/", json={"title_en": "Law"}, headers={"X-Admin-Key": "s3cret"})
    assert response.status_code == 201
    # Reads stay open
    assert (await client.get("/api/categories/")).status_code == 200
