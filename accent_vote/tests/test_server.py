"""
Tests for the root app: landing, health and the uvicorn entry point.
"""

from unittest.mock import AsyncMock, patch

from fastapi.testclient import TestClient

import main


def test_root():
    response = TestClient(main.app).get("/")

    assert response.status_code == 200
    assert response.json()["status"] == "running"


def test_health_reports_database_down():
    with patch('main.db') as mock_db:
        mock_db.client.admin.command = AsyncMock(side_effect=ConnectionError("no server"))

        response = TestClient(main.app).get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "database": "disconnected"}


def test_serve_runs_uvicorn_with_settings():
    with patch('main.uvicorn.run') as mock_run, \
         patch.object(main.settings, 'HOST', '0.0.0.0'), \
         patch.object(main.settings, 'PORT', 9000):
        main.serve()

    mock_run.assert_called_once_with("main:app", host="0.0.0.0", port=9000, log_config=None)
