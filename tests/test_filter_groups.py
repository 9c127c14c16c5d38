TAXONOMY = [
    {
        "id": "grp-clients",
        "name": "Clients",
        "color": "#2563eb",
        "items": [
            {"id": "itm-microsoft", "name": "Microsoft", "color": "#00a4ef"},
            {"id": "itm-apple", "name": "Apple", "color": "#555555"},
        ],
    },
    {
        "id": "grp-areas",
        "name": "Areas",
        "color": "#16a34a",
        "items": [{"id": "itm-health", "name": "Health", "color": "#dc2626"}],
    },
]


def _groups(client, user):
    response = client.get("/api/filter-groups", params={"userId": user["id"]})
    assert response.status_code == 200
    return response.json()


def _bulk(client, user, groups):
    return client.post("/api/filter-groups/bulk", json={"userId": user["id"], "filterGroups": groups})


def test_create_group_then_get(client, user):
    response = client.post(
        "/api/filter-groups",
        json={"name": "Clients", "color": "#2563eb", "userId": user["id"]},
    )
    assert response.status_code == 200
    group = response.json()
    assert group["items"] == []
    assert group["userId"] == user["id"]

    fetched = client.get(f"/api/filter-groups/{group['id']}").json()
    assert fetched == group


def test_items_crud(client, user):
    group = client.post(
        "/api/filter-groups", json={"name": "Clients", "color": "#2563eb", "userId": user["id"]}
    ).json()

    first = client.post(
        "/api/filter-items",
        json={"name": "Microsoft", "color": "#00a4ef", "groupId": group["id"], "userId": user["id"]},
    ).json()
    client.post(
        "/api/filter-items",
        json={"name": "Apple", "color": "#555555", "groupId": group["id"], "userId": user["id"]},
    )
    assert first["groupId"] == group["id"]

    [loaded] = _groups(client, user)
    assert [i["name"] for i in loaded["items"]] == ["Microsoft", "Apple"]

    renamed = client.put(f"/api/filter-items/{first['id']}", json={"name": "MSFT"}).json()
    assert renamed["name"] == "MSFT"
    assert renamed["color"] == "#00a4ef"

    assert client.delete(f"/api/filter-items/{first['id']}").json()["success"] is True
    [loaded] = _groups(client, user)
    assert [i["name"] for i in loaded["items"]] == ["Apple"]

    assert client.put("/api/filter-items/nope", json={"name": "x"}).status_code == 404
    assert client.delete("/api/filter-items/nope").status_code == 404


def test_item_needs_an_owned_group(client, user, other_user):
    theirs = client.post(
        "/api/filter-groups", json={"name": "Private", "color": "#000", "userId": other_user["id"]}
    ).json()
    response = client.post(
        "/api/filter-items",
        json={"name": "Intruder", "color": "#fff", "groupId": theirs["id"], "userId": user["id"]},
    )
    assert response.status_code == 404
    assert response.json() == {"error": "Filter group not found"}


def test_update_and_delete_group(client, user, other_user):
    _bulk(client, user, TAXONOMY)

    headers = {"X-User-Id": other_user["id"]}
    assert client.put("/api/filter-groups/grp-clients", json={"name": "x"}, headers=headers).status_code == 404

    updated = client.put("/api/filter-groups/grp-clients", json={"color": "#000000"}).json()
    assert updated["color"] == "#000000"
    assert updated["name"] == "Clients"
    assert len(updated["items"]) == 2

    assert client.delete("/api/filter-groups/grp-clients").status_code == 200
    assert client.get("/api/filter-groups/grp-clients").status_code == 404
    assert client.delete("/api/filter-items/itm-apple").status_code == 404
    assert [g["id"] for g in _groups(client, user)] == ["grp-areas"]


def test_bulk_replace(client, user, other_user):
    _bulk(client, other_user, [{"name": "Theirs", "color": "#111", "items": []}])

    response = _bulk(client, user, TAXONOMY)
    assert response.status_code == 200
    assert response.json() == {"success": True, "message": "Filter groups saved successfully"}

    groups = _groups(client, user)
    assert [g["id"] for g in groups] == ["grp-clients", "grp-areas"]
    assert [i["id"] for i in groups[0]["items"]] == ["itm-microsoft", "itm-apple"]

    # replace again: old groups vanish, missing ids are generated
    _bulk(client, user, [{"name": "Energy", "color": "#eab308", "items": [{"name": "Low", "color": "#ccc"}]}])
    groups = _groups(client, user)
    assert [g["name"] for g in groups] == ["Energy"]
    assert groups[0]["id"]
    assert groups[0]["items"][0]["id"]

    # other users are untouched
    assert [g["name"] for g in _groups(client, other_user)] == ["Theirs"]


def test_bulk_replace_is_all_or_nothing(client, user):
    _bulk(client, user, TAXONOMY)

    broken = [
        {"name": "Ok", "color": "#000", "items": [{"id": "dup", "name": "A", "color": "#000"}]},
        {"name": "Clash", "color": "#000", "items": [{"id": "dup", "name": "B", "color": "#000"}]},
    ]
    response = _bulk(client, user, broken)
    assert response.status_code == 500
    assert response.json() == {"error": "Failed to save filter groups"}

    groups = _groups(client, user)
    assert [g["id"] for g in groups] == ["grp-clients", "grp-areas"]
    assert sum(len(g["items"]) for g in groups) == 3


def test_bulk_replace_keeps_project_links_for_surviving_items(client, user):
    _bulk(client, user, TAXONOMY)
    project = client.post(
        "/api/projects",
        json={"title": "Keynote", "createdBy": user["id"], "filterItemIds": ["itm-apple", "itm-health"]},
    ).json()

    reordered = [
        {
            "id": "grp-clients",
            "name": "Customers",
            "color": "#2563eb",
            "items": [{"id": "itm-apple", "name": "Apple Inc.", "color": "#555555"}],
        }
    ]
    assert _bulk(client, user, reordered).status_code == 200

    linked = client.get(f"/api/projects/{project['id']}").json()["filterItemIds"]
    assert linked == ["itm-apple"]


def test_bulk_requires_user(client):
    response = client.post("/api/filter-groups/bulk", json={"filterGroups": []})
    assert response.status_code == 400
    assert response.json() == {"error": "User ID is required"}


def test_tags_survive_bulk_replace(client, user):
    _bulk(client, user, TAXONOMY)
    task = client.post(
        "/api/tasks", json={"title": "Pitch", "createdBy": user["id"], "tags": ["itm-apple"]}
    ).json()
    _bulk(client, user, TAXONOMY)
    assert client.get(f"/api/tasks/{task['id']}").json()["tags"] == ["itm-apple"]


def test_list_requires_user(client):
    assert client.get("/api/filter-groups").status_code == 400
