from utils.ids import now_ms

DEVICE = {"x-device-id": "device-a"}
OTHER = {"x-device-id": "device-b"}


def _create(api, headers=DEVICE, **item):
    response = api.post("/api/library", headers=headers, json={"item": item})
    assert response.status_code == 200
    return response.json()["item"]


def test_gear_drive_scenario(api):
    item = _create(api, title="Gear Drive", category="Physics")

    assert item["id"]
    assert abs(item["date"] - now_ms()) < 60_000
    assert item["type"] == "card"
    assert "thumbnail" not in item

    items = api.get("/api/library", headers=DEVICE).json()["items"]
    assert items[0]["id"] == item["id"]
    assert items[0]["title"] == "Gear Drive"
    assert api.get("/api/stats", headers=DEVICE).json()["stats"]["itemsSaved"] == 1

    _create(api, title="Lever", category="Physics")
    items = api.get("/api/library", headers=DEVICE).json()["items"]
    assert [entry["title"] for entry in items] == ["Lever", "Gear Drive"]


def test_items_saved_tracks_creates_and_deletes(api):
    first = _create(api, title="Moon")
    second = _create(api, title="Sun")
    _create(api, title="Comet")

    response = api.delete(f"/api/library/{first['id']}", headers=DEVICE)
    assert response.status_code == 200
    assert [entry["title"] for entry in response.json()["items"]] == ["Comet", "Sun"]
    assert api.get("/api/stats", headers=DEVICE).json()["stats"]["itemsSaved"] == 2

    api.delete(f"/api/library/{second['id']}", headers=DEVICE)
    api.delete("/api/library/does-not-exist", headers=DEVICE)
    assert api.get("/api/stats", headers=DEVICE).json()["stats"]["itemsSaved"] == 1


def test_blank_fields_get_defaults(api):
    item = _create(api, type="", category="", funFact="")

    assert item["type"] == "card"
    assert item["category"] == "General"
    assert item["title"] == ""
    assert "funFact" not in item


def test_scan_item_keeps_questions_and_tags(api):
    _create(
        api,
        type="scan",
        title="Sunflower",
        relatedQuestions=["Why does it follow the sun?"],
        tags=["Summer", "Seeds"],
    )

    stored = api.get("/api/library", headers=DEVICE).json()["items"][0]
    assert stored["type"] == "scan"
    assert stored["relatedQuestions"] == ["Why does it follow the sun?"]
    assert stored["tags"] == ["Summer", "Seeds"]


def test_optimize_images_strips_only_inline_thumbnails(api):
    _create(api, title="Inline", thumbnail="data:image/jpeg;base64,AAAA")
    _create(api, title="Remote", thumbnail="https://example.com/cat.png")

    response = api.post("/api/library/optimize-images", headers=DEVICE)

    assert response.json() == {"optimized": 1}
    by_title = {entry["title"]: entry for entry in api.get("/api/library", headers=DEVICE).json()["items"]}
    assert "thumbnail" not in by_title["Inline"]
    assert by_title["Remote"]["thumbnail"] == "https://example.com/cat.png"


def test_library_is_isolated_per_device(api):
    mine = _create(api, title="Mine")
    _create(api, headers=OTHER, title="Theirs")

    api.delete(f"/api/library/{mine['id']}", headers=OTHER)

    assert [entry["title"] for entry in api.get("/api/library", headers=DEVICE).json()["items"]] == ["Mine"]
    assert [entry["title"] for entry in api.get("/api/library", headers=OTHER).json()["items"]] == ["Theirs"]
    assert api.get("/api/stats", headers=OTHER).json()["stats"]["itemsSaved"] == 1
