from bson import ObjectId

from conftest import bearer


def seed(db, count=12):
    for i in range(count):
        db["categories"].insert_one({"name": f"cat-{i:02d}", "type": "tag", "slug": f"cat-{i:02d}"})


# --- listing ---

def test_pagination_second_page(client, db):
    seed(db)
    resp = client.get("/api/categories", params={"page": 2, "limit": 5})
    assert resp.status_code == 200
    body = resp.json()
    assert [c["name"] for c in body["categories"]] == [f"cat-{i:02d}" for i in range(5, 10)]
    assert body["currentPage"] == 2
    assert body["totalPages"] == 3
    assert body["totalItems"] == 12
    assert resp.headers["Cache-Control"] == "public, max-age=600"


def test_pagination_last_page_is_short(client, db):
    seed(db)
    body = client.get("/api/categories", params={"page": 3, "limit": 5}).json()
    assert [c["name"] for c in body["categories"]] == ["cat-10", "cat-11"]


def test_pagination_sorted_by_name(client, db):
    for name in ("Luxury", "Electric", "Family"):
        db["categories"].insert_one({"name": name, "type": "tag", "slug": name.lower()})
    body = client.get("/api/categories").json()
    assert [c["name"] for c in body["categories"]] == ["Electric", "Family", "Luxury"]
    assert body["totalPages"] == 1


def test_pagination_rejects_bad_page(client):
    assert client.get("/api/categories", params={"page": 0}).status_code == 400


def test_categories_by_car_type(client, db):
    db["categories"].insert_many([
        {"name": "SUVs", "type": "carType", "value": "SUV", "slug": "suvs"},
        {"name": "Sedans", "type": "carType", "value": "Sedan", "slug": "sedans"},
        {"name": "Electric", "type": "fuelType", "slug": "electric"},
    ])
    assert [c["name"] for c in client.get("/api/categories/type/SUV").json()] == ["SUVs"]
    assert [c["name"] for c in client.get("/api/categories/type/fuelType").json()] == ["Electric"]
    assert len(client.get("/api/categories/type/carType").json()) == 2


def test_featured_categories(client, db):
    db["categories"].insert_many([
        {"name": "A", "type": "tag", "slug": "a", "featured": True},
        {"name": "B", "type": "tag", "slug": "b", "featured": False},
    ])
    assert [c["name"] for c in client.get("/api/categories/featured").json()] == ["A"]


def test_search_merges_name_and_type_matches(client, db):
    db["categories"].insert_many([
        {"name": "Family", "type": "tag", "slug": "family"},
        {"name": "fast", "type": "fuelType", "slug": "fast"},
        {"name": "Luxury", "type": "tag", "slug": "luxury"},
    ])
    resp = client.get("/api/categories/search", params={"q": "f"})
    assert resp.status_code == 200
    # "fast" matches on both name and type but is returned once
    assert [c["name"] for c in resp.json()] == ["fast"]
    names = [c["name"] for c in client.get("/api/categories/search", params={"q": "Fa"}).json()]
    assert names == ["Family"]
    assert client.get("/api/categories/search").json() == []


def test_slug_lookup(client, db):
    db["categories"].insert_one({"name": "SUVs", "type": "carType", "slug": "suvs"})
    assert client.get("/api/categories/slug/suvs").json()["name"] == "SUVs"
    resp = client.get("/api/categories/slug/none")
    assert resp.status_code == 404
    assert resp.json()["error"] == "Category not found"


# --- admin writes ---

def test_create_category(client, db, category_admin):
    payload = {"name": "SUVs", "type": "carType", "value": "SUV", "slug": "suvs"}
    resp = client.post("/api/categories", json=payload, headers=category_admin)
    assert resp.status_code == 201
    data = resp.json()
    assert data["featured"] is False
    assert data["description"] == ""
    assert data["carCount"] == 0
    assert data["createdAt"] == data["updatedAt"]
    assert db["categories"].count_documents({}) == 1


def test_create_category_duplicate_slug(client, db, category_admin):
    payload = {"name": "SUVs", "type": "carType", "slug": "suvs"}
    client.post("/api/categories", json=payload, headers=category_admin)
    resp = client.post("/api/categories", json=payload, headers=category_admin)
    assert resp.status_code == 400
    assert resp.json()["error"] == "Category with this slug already exists"
    assert db["categories"].count_documents({}) == 1


def test_create_category_missing_fields(client, db, category_admin):
    resp = client.post("/api/categories", json={"name": "SUVs"}, headers=category_admin)
    assert resp.status_code == 400
    assert db["categories"].count_documents({}) == 0


def test_create_category_requires_staff_domain(client, db, car_admin):
    payload = {"name": "SUVs", "type": "carType", "slug": "suvs"}
    assert client.post("/api/categories", json=payload).status_code == 401
    assert client.post("/api/categories", json=payload, headers=car_admin).status_code == 403
    bad = {"Authorization": "Bearer not-a-jwt"}
    resp = client.post("/api/categories", json=payload, headers=bad)
    assert resp.status_code == 401
    assert resp.json()["error"] == "Authentication failed"
    assert db["categories"].count_documents({}) == 0


def test_update_category(client, db, category_admin):
    created = client.post("/api/categories", json={"name": "SUVs", "type": "carType", "slug": "suvs"},
                          headers=category_admin).json()
    resp = client.put(f"/api/categories/{created['id']}", json={"name": "Big SUVs", "slug": "suvs"},
                      headers=category_admin)
    assert resp.status_code == 200
    data = resp.json()
    assert data["name"] == "Big SUVs"
    assert data["slug"] == "suvs"
    assert data["id"] == created["id"]


def test_update_category_slug_conflict(client, db, category_admin):
    first = client.post("/api/categories", json={"name": "A", "type": "tag", "slug": "a"},
                        headers=category_admin).json()
    client.post("/api/categories", json={"name": "B", "type": "tag", "slug": "b"}, headers=category_admin)
    resp = client.put(f"/api/categories/{first['id']}", json={"slug": "b"}, headers=category_admin)
    assert resp.status_code == 400
    assert db["categories"].find_one({"_id": ObjectId(first["id"])})["slug"] == "a"


def test_update_category_rejects_null_slug(client, db, category_admin):
    created = client.post("/api/categories", json={"name": "A", "type": "tag", "slug": "a"},
                          headers=category_admin).json()
    resp = client.put(f"/api/categories/{created['id']}", json={"slug": None}, headers=category_admin)
    assert resp.status_code == 400
    assert db["categories"].find_one({"_id": ObjectId(created["id"])})["slug"] == "a"


def test_update_missing_category(client, category_admin):
    resp = client.put(f"/api/categories/{ObjectId()}", json={"name": "X"}, headers=category_admin)
    assert resp.status_code == 404


def test_delete_category(client, db, category_admin):
    created = client.post("/api/categories", json={"name": "A", "type": "tag", "slug": "a"},
                          headers=category_admin).json()
    resp = client.delete(f"/api/categories/{created['id']}", headers=category_admin)
    assert resp.status_code == 200
    assert db["categories"].count_documents({}) == 0
    again = client.delete(f"/api/categories/{created['id']}", headers=category_admin)
    assert again.status_code == 404


def test_delete_category_without_email_claim(client, db):
    category_id = db["categories"].insert_one({"name": "A", "type": "tag", "slug": "a"}).inserted_id
    resp = client.delete(f"/api/categories/{category_id}", headers=bearer(admin=True))
    assert resp.status_code == 403
    assert db["categories"].count_documents({}) == 1
