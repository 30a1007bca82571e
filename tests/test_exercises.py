from sqlmodel import Session, select

from household_hub.models import BodyPart, ExerciseTemplate, ScheduledExercise


def add_member(client, name="Alice"):
    resp = client.post("/api/members", json={"name": name})
    assert resp.status_code == 201
    return resp.json()["data"]["id"]


def add_exercise(client, member_id, name="Push-up", body_part="chest", day=None, **fields):
    payload = {"member": member_id, "name": name, "bodyPart": body_part, "sets": 3, "reps": "10"}
    if day:
        payload["dayOfWeek"] = day
    payload.update(fields)
    resp = client.post("/api/exercises", json=payload)
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


def seed_plan(client):
    alice = add_member(client, "Alice")
    bob = add_member(client, "Bob")
    add_exercise(client, alice, day="monday")
    add_exercise(client, alice, day="wednesday")
    add_exercise(client, alice)
    add_exercise(client, bob, day="monday")
    add_exercise(client, alice, body_part="arms", day="friday")
    return alice, bob


def triple(member_id, name="Push-up", body_part="chest"):
    return {"name": name, "bodyPart": body_part, "member": member_id}


def test_rows_of_one_exercise_share_a_template(client, session: Session):
    alice = add_member(client)
    monday = add_exercise(client, alice, day="monday", order=2)
    library = add_exercise(client, alice, dayOfWeek="")

    assert monday["templateId"] == library["templateId"]
    assert monday["name"] == "Push-up"
    assert monday["bodyPart"] == "chest"
    assert monday["member"]["name"] == "Alice"
    assert monday["order"] == 2
    assert library["dayOfWeek"] is None
    assert len(session.exec(select(ExerciseTemplate)).all()) == 1


def test_exercise_for_unknown_member_is_rejected(client):
    resp = client.post("/api/exercises", json={"member": 42, "name": "Squat", "bodyPart": "legs"})
    assert resp.status_code == 400
    assert resp.json()["success"] is False


def test_list_orders_by_weekday_and_filters_library(client):
    alice, _ = seed_plan(client)

    rows = client.get("/api/exercises", params={"memberId": alice}).json()["data"]
    assert [r["dayOfWeek"] for r in rows] == ["monday", "wednesday", "friday", None]

    library = client.get("/api/exercises", params={"memberId": alice, "dayOfWeek": "library"}).json()["data"]
    assert len(library) == 1
    assert library[0]["dayOfWeek"] is None

    monday = client.get("/api/exercises", params={"dayOfWeek": "monday"}).json()["data"]
    assert sorted(r["member"]["name"] for r in monday) == ["Alice", "Bob"]

    assert client.get("/api/exercises", params={"dayOfWeek": "someday"}).status_code == 400


def test_bulk_update_touches_only_the_exact_triple(client, session: Session):
    alice, bob = seed_plan(client)

    resp = client.post(
        "/api/exercises/bulk-update",
        json={"filter": triple(alice), "updates": {"reps": "15", "weight": "10 kg"}},
    )

    assert resp.status_code == 200
    body = resp.json()
    assert body["modifiedCount"] == 3
    assert len(body["data"]) == 3
    assert all(r["reps"] == "15" and r["weight"] == "10 kg" for r in body["data"])

    others = client.get("/api/exercises", params={"memberId": bob}).json()["data"]
    assert [r["reps"] for r in others] == ["10"]
    arms = [
        r
        for r in client.get("/api/exercises", params={"memberId": alice}).json()["data"]
        if r["bodyPart"] == "arms"
    ]
    assert arms[0]["reps"] == "10"
    assert arms[0]["weight"] is None


def test_bulk_update_rename_moves_all_rows(client, session: Session):
    alice, _ = seed_plan(client)

    resp = client.post(
        "/api/exercises/bulk-update",
        json={"filter": triple(alice), "updates": {"name": "Incline Push-up"}},
    )

    data = resp.json()["data"]
    assert {r["name"] for r in data} == {"Incline Push-up"}
    assert resp.json()["modifiedCount"] == 3
    names = session.exec(
        select(ExerciseTemplate.name).where(ExerciseTemplate.member_id == alice)
    ).all()
    assert sorted(names) == ["Incline Push-up", "Push-up"]


def test_bulk_update_into_existing_exercise_merges_templates(client, session: Session):
    alice, _ = seed_plan(client)
    add_exercise(client, alice, name="Diamond Push-up", day="tuesday")

    resp = client.post(
        "/api/exercises/bulk-update",
        json={"filter": triple(alice), "updates": {"name": "Diamond Push-up", "sets": 4}},
    )

    body = resp.json()
    assert body["modifiedCount"] == 3
    assert len(body["data"]) == 4
    assert sorted(r["sets"] for r in body["data"]) == [3, 4, 4, 4]
    chest = session.exec(
        select(ExerciseTemplate).where(
            ExerciseTemplate.member_id == alice, ExerciseTemplate.body_part == BodyPart.chest
        )
    ).all()
    assert [t.name for t in chest] == ["Diamond Push-up"]
    assert len(session.exec(select(ScheduledExercise)).all()) == 6


def test_bulk_update_without_matches_modifies_nothing(client):
    alice, _ = seed_plan(client)
    resp = client.post(
        "/api/exercises/bulk-update",
        json={"filter": triple(alice, name="Burpee"), "updates": {"reps": "1"}},
    )
    assert resp.status_code == 200
    assert resp.json()["data"] == []
    assert resp.json()["modifiedCount"] == 0


def test_bulk_update_requires_full_filter(client):
    alice, _ = seed_plan(client)

    missing = client.post("/api/exercises/bulk-update", json={"updates": {"reps": "1"}})
    partial = client.post(
        "/api/exercises/bulk-update",
        json={"filter": {"name": "Push-up", "member": alice}, "updates": {"reps": "1"}},
    )

    for resp in (missing, partial):
        assert resp.status_code == 400
        assert resp.json()["error"] == "Filter with name, bodyPart, and member is required"
    rows = client.get("/api/exercises", params={"memberId": alice}).json()["data"]
    assert all(r["reps"] == "10" for r in rows)


def test_bulk_delete_removes_every_row_once(client, session: Session):
    alice, bob = seed_plan(client)

    first = client.post("/api/exercises/bulk-delete", json=triple(alice))
    again = client.post("/api/exercises/bulk-delete", json=triple(alice))

    assert first.json()["data"] == {"deletedCount": 3}
    assert again.json()["data"] == {"deletedCount": 0}
    assert len(client.get("/api/exercises", params={"memberId": alice}).json()["data"]) == 1
    assert len(client.get("/api/exercises", params={"memberId": bob}).json()["data"]) == 1


def test_bulk_delete_requires_full_triple(client):
    resp = client.post("/api/exercises/bulk-delete", json={"name": "Push-up", "bodyPart": "chest"})
    assert resp.status_code == 400
    assert resp.json()["error"] == "Name, bodyPart, and member are required"


def test_update_single_row_and_change_its_identity(client, session: Session):
    alice = add_member(client)
    row = add_exercise(client, alice, day="monday")

    resp = client.put(
        f"/api/exercises/{row['id']}",
        json={"completed": True, "name": "Wide Push-up", "dayOfWeek": "thursday"},
    )

    data = resp.json()["data"]
    assert data["id"] == row["id"]
    assert data["completed"] is True
    assert data["name"] == "Wide Push-up"
    assert data["dayOfWeek"] == "thursday"
    templates = session.exec(select(ExerciseTemplate)).all()
    assert [t.name for t in templates] == ["Wide Push-up"]


def test_delete_single_row_drops_unused_template(client, session: Session):
    alice = add_member(client)
    row = add_exercise(client, alice, day="monday")

    resp = client.delete(f"/api/exercises/{row['id']}")

    assert resp.status_code == 200
    assert resp.json()["data"]["name"] == "Push-up"
    assert session.exec(select(ExerciseTemplate)).all() == []
    assert client.get(f"/api/exercises/{row['id']}").status_code == 404
