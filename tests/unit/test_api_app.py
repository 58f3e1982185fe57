"""
Bikepark Reports - Flask App Unit Tests

Tests Flask application:
- App creation and blueprint registration
- Root endpoint
- Health endpoint with a mocked database
- JSON error handlers

Priority: P1 - Core API functionality
"""

import pytest
from contextlib import contextmanager
from unittest.mock import MagicMock, patch

from sqlalchemy.exc import OperationalError

from api.app import create_app


@pytest.fixture
def client():
    return create_app().test_client()


class TestCreateApp:

    def test_blueprints_registered(self):
        app = create_app()

        assert {'health', 'reports', 'admin'} <= set(app.blueprints)

    def test_json_keys_not_sorted(self):
        assert create_app().json.sort_keys is False

    def test_debug_follows_setting_outside_production(self):
        with patch('api.app.FLASK_DEBUG', True):
            assert create_app().debug is True

    def test_debug_is_off_in_production(self):
        with patch('api.app.FLASK_DEBUG', True), \
                patch('api.app.config', MagicMock(is_production=True)):
            assert create_app().debug is False

    def test_cors_allows_forwarded_headers(self, client):
        response = client.options('/api/health', headers={
            "Origin": "http://localhost:3000",
            "Access-Control-Request-Method": "GET",
            "Access-Control-Request-Headers": "X-Accessible-Bikeparks",
        })

        assert "x-accessible-bikeparks" in response.headers.get("Access-Control-Allow-Headers", "").lower()


class TestRootEndpoint:

    def test_index(self, client):
        data = client.get('/').get_json()

        assert data["name"] == "Bikepark Reports API"
        assert data["endpoints"]["update_cache"] == "/api/admin/update-cache"


class TestHealthEndpoint:

    @pytest.fixture
    def database(self, mock_connection):
        @contextmanager
        def factory():
            yield mock_connection

        inspector = MagicMock()
        inspector.has_table.return_value = True
        with patch('api.routes.health.get_db_connection', factory), \
                patch('api.routes.health.inspect', return_value=inspector):
            yield mock_connection, inspector

    def test_healthy(self, client, database):
        response = client.get('/api/health')

        assert response.status_code == 200
        data = response.get_json()
        assert data["status"] == "healthy"
        assert data["checks"]["cache_tables"]["missing"] == []

    def test_missing_cache_table_is_degraded(self, client, database):
        _, inspector = database
        inspector.has_table.side_effect = lambda name: name != "stallingsduur_cache"

        data = client.get('/api/health').get_json()

        assert data["status"] == "degraded"
        assert data["checks"]["cache_tables"]["missing"] == ["stallingsduur_cache"]

    def test_database_down(self, client, database):
        conn, _ = database
        conn.execute.side_effect = OperationalError("SELECT 1", {}, Exception("refused"))

        response = client.get('/api/health')

        assert response.status_code == 503
        assert response.get_json()["status"] == "unhealthy"


class TestErrorHandlers:

    def test_not_found_is_json(self, client):
        response = client.get('/api/nope')

        assert response.status_code == 404
        assert response.get_json()["error"] == "Not Found"

    def test_method_not_allowed_is_json(self, client):
        response = client.get('/api/admin/cache/transactionscache')

        assert response.status_code == 405
        assert "error" in response.get_json()
