from decimal import Decimal


def test_item_crud_with_unit_links(client):
    each = client.post("/api/units", json={"name": "EA", "description": "Each"}).json()
    box = client.post("/api/units", json={"name": "BOX"}).json()

    created = client.post(
        "/api/items",
        json={
            "code": "FG-9",
            "name": "Gadget",
            "item_type": "EXTERNAL",
            "units": [
                {"unit_id": each["id"], "is_default": True},
                {"unit_id": box["id"], "conversion_rate": "12"},
            ],
        },
    )
    assert created.status_code == 201
    item = created.json()
    assert {link["unit_name"] for link in item["units"]} == {"EA", "BOX"}
    box_link = next(link for link in item["units"] if link["unit_name"] == "BOX")
    assert Decimal(box_link["conversion_rate"]) == Decimal("12")

    updated = client.put(
        f"/api/items/{item['id']}",
        json={"name": "Gadget Pro", "item_type": "EXTERNAL", "units": [{"unit_id": box["id"], "is_default": True}]},
    )
    assert updated.status_code == 200
    assert updated.json()["code"] == "FG-9"
    assert [link["unit_name"] for link in updated.json()["units"]] == ["BOX"]

    listed = client.get("/api/items", params={"search": "pro"}).json()
    assert [row["name"] for row in listed] == ["Gadget Pro"]

    assert client.delete(f"/api/items/{item['id']}").status_code == 204
    assert client.get(f"/api/items/{item['id']}").status_code == 404


def test_duplicate_codes_are_rejected(client):
    client.post("/api/warehouses", json={"code": "WH-1", "name": "Main"})
    duplicate = client.post("/api/warehouses", json={"code": "WH-1", "name": "Other"})

    assert duplicate.status_code == 409
    assert duplicate.json()["detail"]["code"] == "DUPLICATE"

    client.post("/api/units", json={"name": "KG"})
    assert client.post("/api/units", json={"name": "KG"}).status_code == 409


def test_item_with_unknown_unit_is_not_found(client):
    response = client.post(
        "/api/items",
        json={"code": "X-1", "name": "X", "item_type": "RAW_MATERIAL", "units": [{"unit_id": 999}]},
    )

    assert response.status_code == 404
    assert client.get("/api/items").json() == []


def test_item_type_is_validated_by_schema(client):
    response = client.post("/api/items", json={"code": "X-1", "name": "X", "item_type": "SERVICE"})

    assert response.status_code == 422


def test_guarded_deletes_refuse_referenced_rows(client, api_key):
    inbound = client.post(
        "/api/transactions/inbound",
        json={
            "lot_id": api_key["lot_id"],
            "warehouse_id": api_key["warehouse_id"],
            "unit_id": api_key["unit_id"],
            "quantity": "3",
        },
    )
    assert inbound.status_code == 201

    for path in (
        f"/api/items/{api_key['item_id']}",
        f"/api/lots/{api_key['lot_id']}",
        f"/api/warehouses/{api_key['warehouse_id']}",
        f"/api/units/{api_key['unit_id']}",
    ):
        response = client.delete(path)
        assert response.status_code == 409, path
        assert response.json()["detail"]["code"] == "REFERENCE_IN_USE"


def test_unused_reference_data_can_be_deleted(client):
    warehouse = client.post("/api/warehouses", json={"code": "WH-9", "name": "Spare"}).json()
    unit = client.post("/api/units", json={"name": "L"}).json()

    assert client.delete(f"/api/warehouses/{warehouse['id']}").status_code == 204
    assert client.delete(f"/api/units/{unit['id']}").status_code == 204
    assert client.get("/api/warehouses").json() == []


def test_lot_crud(client):
    item = client.post("/api/items", json={"code": "RM-1", "name": "Resin", "item_type": "RAW_MATERIAL"}).json()

    lot = client.post(
        "/api/lots",
        json={"lot_number": "L-100", "item_id": item["id"], "production_date": "2024-04-01"},
    )
    assert lot.status_code == 201
    assert lot.json()["item_code"] == "RM-1"

    renamed = client.put(
        f"/api/lots/{lot.json()['id']}",
        json={"lot_number": "L-101", "production_date": "2024-04-02"},
    )
    assert renamed.json()["lot_number"] == "L-101"
    assert [row["lot_number"] for row in client.get("/api/lots", params={"item_id": item["id"]}).json()] == ["L-101"]

    missing_item = client.post(
        "/api/lots",
        json={"lot_number": "L-200", "item_id": 9999, "production_date": "2024-04-01"},
    )
    assert missing_item.status_code == 404


def test_item_unit_links_can_be_cleared(client):
    each = client.post("/api/units", json={"name": "EA"}).json()
    item = client.post(
        "/api/items",
        json={"code": "FG-7", "name": "Bracket", "item_type": "MANUFACTURED", "units": [{"unit_id": each["id"]}]},
    ).json()

    kept = client.put(f"/api/items/{item['id']}", json={"name": "Bracket", "item_type": "MANUFACTURED"})
    assert [link["unit_name"] for link in kept.json()["units"]] == ["EA"]

    cleared = client.put(f"/api/items/{item['id']}", json={"name": "Bracket", "item_type": "MANUFACTURED", "units": []})
    assert cleared.status_code == 200
    assert cleared.json()["units"] == []
