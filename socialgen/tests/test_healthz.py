from socialgen.core.database import init_engine


def test_healthz_ok(client):
    resp = client.get("/healthz")
    assert resp.status_code == 200
    assert resp.json().get("status") == "ok"


def test_healthz_reports_unreachable_database(client, tmp_path):
    init_engine(f"sqlite:///{tmp_path / 'missing' / 'nowhere.db'}")
    resp = client.get("/healthz")
    assert resp.status_code == 503
    assert resp.json()["detail"] == "database unreachable"
