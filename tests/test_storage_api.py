DEVICE = {"x-device-id": "device-a"}
OTHER = {"x-device-id": "device-b"}


def test_breakdown_counts_each_kind(api):
    api.get("/api/settings", headers=DEVICE)
    api.get("/api/stats", headers=DEVICE)
    api.post("/api/library", headers=DEVICE, json={"item": {"title": "Owl", "content": "x" * 4096}})
    api.post("/api/sessions", headers=DEVICE, json={"firstMessageText": "hello"})

    breakdown = api.get("/api/storage/breakdown", headers=DEVICE).json()["breakdown"]

    assert breakdown["libraryCount"] == 1
    assert breakdown["sessionsCount"] == 1
    assert float(breakdown["librarySize"]) >= 4.0
    assert float(breakdown["systemSize"]) > 0
    total = float(breakdown["librarySize"]) + float(breakdown["sessionsSize"]) + float(breakdown["systemSize"])
    assert abs(float(breakdown["totalSize"]) - total) <= 0.2
    assert all(isinstance(breakdown[key], str) for key in ("librarySize", "sessionsSize", "systemSize", "totalSize"))


def test_breakdown_for_empty_device(api):
    breakdown = api.get("/api/storage/breakdown", headers=DEVICE).json()["breakdown"]

    assert breakdown == {
        "librarySize": "0.0",
        "libraryCount": 0,
        "sessionsSize": "0.0",
        "sessionsCount": 0,
        "systemSize": "0.0",
        "totalSize": "0.0",
    }


def test_clear_all_resets_every_kind(api):
    api.put("/api/settings", headers=DEVICE, json={"settings": {"theme": "dark"}})
    api.post("/api/stats/xp", headers=DEVICE, json={"amount": 40})
    api.post("/api/library", headers=DEVICE, json={"item": {"title": "Owl"}})
    api.post("/api/sessions", headers=DEVICE, json={"firstMessageText": "hello"})
    api.post("/api/library", headers=OTHER, json={"item": {"title": "Fox"}})

    assert api.delete("/api/all", headers=DEVICE).json() == {"ok": True}

    assert api.get("/api/settings", headers=DEVICE).json()["settings"]["theme"] == "system"
    stats = api.get("/api/stats", headers=DEVICE).json()["stats"]
    assert stats["xp"] == 0
    assert stats["itemsSaved"] == 0
    assert api.get("/api/library", headers=DEVICE).json()["items"] == []
    assert api.get("/api/sessions", headers=DEVICE).json()["sessions"] == []
    assert len(api.get("/api/library", headers=OTHER).json()["items"]) == 1


def test_health_needs_no_device(api):
    response = api.get("/api/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"
