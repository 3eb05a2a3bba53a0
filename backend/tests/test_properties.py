"""매물 CRUD와 수정/삭제 시 스토리지 이미지 정리 흐름을 검증하는 자동화 테스트입니다."""

from tests.conftest import login_admin


def _payload(images, **overrides):
    payload = {
        "title": "2BHK near station",
        "content": "Sunny flat",
        "property_type": "Flat",
        "bhk": 2,
        "baths": 2,
        "price": 4500000,
        "area_size": 950,
        "city": "Pune",
        "address": "12 MG Road",
        "state": "MH",
        "owner_name": "Owner",
        "owner_number": "9999999999",
        "amenities": ["Parking", "Lift"],
        "images": images,
    }
    payload.update(overrides)
    return payload


def _create(client, images, **overrides):
    resp = client.post("/api/properties", json=_payload(images, **overrides))
    assert resp.status_code == 200, resp.text
    return resp.json()


def test_create_requires_admin(client, storage):
    resp = client.post("/api/properties", json=_payload([]))
    assert resp.status_code == 401


def test_create_list_and_get(client, storage):
    login_admin(client)
    url = storage.put("1-a.webp")
    created = _create(client, [url])

    assert created["images"] == [url]
    assert created["amenities"] == ["Parking", "Lift"]
    assert created["status"] == "active"

    listed = client.get("/api/properties").json()
    assert [p["property_id"] for p in listed] == [created["property_id"]]

    fetched = client.get(f"/api/properties/{created['property_id']}").json()
    assert fetched["title"] == "2BHK near station"


def test_get_missing_property(client):
    resp = client.get("/api/properties/9999")
    assert resp.status_code == 404


def test_create_rejects_invalid_status(client, storage):
    login_admin(client)
    resp = client.post("/api/properties", json=_payload([], status="archived"))
    assert resp.status_code == 400


def test_land_listing_drops_rooms_and_amenities(client, storage):
    login_admin(client)
    created = _create(client, [], property_type="Plot")

    assert created["bhk"] is None
    assert created["baths"] is None
    assert created["amenities"] == []


def test_update_deletes_only_removed_images(client, storage):
    login_admin(client)
    url1 = storage.put("1-one.webp")
    url2 = storage.put("2-two.webp")
    url3 = storage.put("3-three.webp")
    created = _create(client, [url1, url2])

    resp = client.put(f"/api/properties/{created['property_id']}", json={"images": [url2, url3]})

    assert resp.status_code == 200
    data = resp.json()
    assert data["success"] is True
    assert data["imagesDeleted"] == 1
    assert data["imageErrors"] == []
    assert data["data"]["images"] == [url2, url3]
    assert storage.remove_calls == [["1-one.webp"]]
    assert set(storage.objects) == {"2-two.webp", "3-three.webp"}


def test_update_without_images_keeps_storage(client, storage):
    login_admin(client)
    url1 = storage.put("1-one.webp")
    created = _create(client, [url1])

    resp = client.patch(f"/api/properties/{created['property_id']}", json={"title": "Renamed", "price": None})

    assert resp.status_code == 200
    data = resp.json()
    assert data["imagesDeleted"] == 0
    assert data["data"]["title"] == "Renamed"
    assert data["data"]["price"] is None
    assert data["data"]["images"] == [url1]
    assert storage.remove_calls == []


def test_update_succeeds_when_cleanup_fails(client, storage):
    login_admin(client)
    url1 = storage.put("1-one.webp")
    url2 = storage.put("2-two.webp")
    storage.failing_keys = {"1-one.webp"}
    created = _create(client, [url1, url2])

    resp = client.put(f"/api/properties/{created['property_id']}", json={"images": [url2]})

    assert resp.status_code == 200
    data = resp.json()
    assert data["imagesDeleted"] == 0
    assert data["imageErrors"] == ["1-one.webp: permission denied"]
    assert client.get(f"/api/properties/{created['property_id']}").json()["images"] == [url2]


def test_update_without_storage_reports_error(client, storage, unconfigured_storage):
    login_admin(client)
    created = _create(client, [storage.put("1-one.webp")])

    resp = client.put(f"/api/properties/{created['property_id']}", json={"images": []})

    assert resp.status_code == 200
    data = resp.json()
    assert data["imageErrors"] == ["Storage not configured"]
    assert data["data"]["images"] == []
    assert "1-one.webp" in storage.objects


def test_delete_removes_all_images(client, storage):
    login_admin(client)
    urls = [storage.put("1-one.webp"), storage.put("2-two.webp")]
    created = _create(client, urls)

    resp = client.delete(f"/api/properties/{created['property_id']}")

    assert resp.status_code == 200
    data = resp.json()
    assert data["message"] == "Property deleted"
    assert data["imagesDeleted"] == 2
    assert storage.objects == {}
    assert client.get(f"/api/properties/{created['property_id']}").status_code == 404


def test_delete_requires_admin(client, storage):
    login_admin(client)
    created = _create(client, [])
    client.post("/api/auth/logout")

    resp = client.delete(f"/api/properties/{created['property_id']}")
    assert resp.status_code == 401


def test_update_rejects_blank_required_field(client, storage):
    login_admin(client)
    url1 = storage.put("1-one.webp")
    created = _create(client, [url1])

    resp = client.put(f"/api/properties/{created['property_id']}", json={"city": "", "images": []})

    assert resp.status_code == 422
    assert storage.remove_calls == []
    assert client.get("/api/properties").status_code == 200
    fetched = client.get(f"/api/properties/{created['property_id']}")
    assert fetched.status_code == 200
    assert fetched.json()["city"] == "Pune"
    assert fetched.json()["images"] == [url1]
