import run_server


def _capture(monkeypatch):
    calls = []
    monkeypatch.setattr(run_server.uvicorn, "run", lambda app, **kwargs: calls.append((app, kwargs)))
    monkeypatch.setattr(run_server, "load_dotenv", lambda: None)
    return calls


def test_env_defaults(monkeypatch):
    monkeypatch.setenv("HOST", "0.0.0.0")
    monkeypatch.setenv("PORT", "9000")
    monkeypatch.setenv("WEB_CONCURRENCY", "3")
    monkeypatch.setenv("REDIS_URL", "redis://localhost:6379/0")
    calls = _capture(monkeypatch)

    run_server.main([])

    app, kwargs = calls[0]
    assert app == "server.app:create_app"
    assert kwargs["factory"] is True
    assert (kwargs["host"], kwargs["port"], kwargs["workers"]) == ("0.0.0.0", 9000, 3)


def test_reload_forces_single_worker(monkeypatch):
    monkeypatch.delenv("WEB_CONCURRENCY", raising=False)
    calls = _capture(monkeypatch)

    run_server.main(["--reload", "--workers", "4", "--port", "8123"])

    _, kwargs = calls[0]
    assert kwargs["workers"] == 1
    assert kwargs["reload"] is True
    assert kwargs["port"] == 8123
