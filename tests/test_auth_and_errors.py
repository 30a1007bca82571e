from sqlalchemy.exc import OperationalError

from household_hub import reminders
from household_hub.auth import hash_password, verify_password
from household_hub.config import Settings

from conftest import build_client, database


def test_password_hashing_roundtrip():
    hashed = hash_password("1234")
    assert hashed != "1234"
    assert verify_password("1234", hashed)
    assert not verify_password("4321", hashed)


def test_api_is_open_without_household_pin(client):
    assert client.get("/api/members").status_code == 200
    status = client.get("/api/auth/status").json()["data"]
    assert status == {"required": False, "authenticated": True}


def test_household_pin_gates_api():
    client = build_client(household_pin="1234")

    denied = client.get("/api/members")
    assert denied.status_code == 401
    assert denied.json()["success"] is False
    assert client.get("/health").json() == {"status": "ok"}
    assert client.get("/api/auth/status").json()["data"] == {"required": True, "authenticated": False}

    wrong = client.post("/api/auth/login", json={"pin": "0000"})
    assert wrong.status_code == 401
    assert wrong.json()["error"] == "Invalid PIN"

    assert client.post("/api/auth/login", json={"pin": "1234"}).status_code == 200
    assert client.get("/api/members").status_code == 200
    assert client.get("/api/auth/status").json()["data"]["authenticated"] is True

    client.post("/api/auth/logout")
    assert client.get("/api/members").status_code == 401


def test_errors_use_the_response_envelope(client):
    malformed = client.post(
        "/api/reminders", content="not json", headers={"Content-Type": "application/json"}
    )
    assert malformed.status_code == 400
    assert malformed.json()["success"] is False

    unknown_route = client.get("/api/nothing-here")
    assert unknown_route.status_code == 404
    assert unknown_route.json() == {"success": False, "error": "Not Found"}


def test_database_failure_maps_to_service_unavailable(client, monkeypatch):
    def locked(*args, **kwargs):
        raise OperationalError("SELECT", {}, Exception("database is locked"))

    monkeypatch.setattr(reminders, "list_reminders", locked)

    resp = client.get("/api/reminders")

    assert resp.status_code == 503
    assert resp.json() == {"success": False, "error": "Database unavailable"}


def test_settings_from_environment(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "sqlite:///tmp/hub.db")
    monkeypatch.setenv("HOUSEHOLD_PIN", "2468")
    monkeypatch.setenv("OPENAI_API_KEY", "")
    monkeypatch.setenv("AI_CONTENT_CHAR_LIMIT", "4000")
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")

    settings = Settings.from_env()

    assert settings.database_url == "sqlite:///tmp/hub.db"
    assert settings.household_pin == "2468"
    assert settings.openai_api_key is None
    assert settings.ai_content_char_limit == 4000
    assert settings.log_level == "DEBUG"
    assert settings.openai_model == "gpt-4o-mini"


def test_importing_main_builds_no_application():
    import household_hub.main as main_module

    assert not hasattr(main_module, "app")
    app = main_module.create_app(settings=Settings(database_url="sqlite://"), database=database)
    assert app.state.database is database
    assert app.state.settings.database_url == "sqlite://"
