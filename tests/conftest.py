import pytest

from station_telemetry.app import create_app
from station_telemetry.config import Config
from station_telemetry.logger import EventLogger


@pytest.fixture
def config():
    return Config()


@pytest.fixture
def event_logger():
    return EventLogger(url="http://localhost/dashboard")


@pytest.fixture
def small_logger():
    return EventLogger(max_logs=3)


@pytest.fixture
def sample_entry_dict():
    return {
        "id": "log_1705314600000_abc123xyz",
        "timestamp": "2024-01-15T10:30:00.000Z",
        "level": 3,
        "category": "API",
        "message": "API Error: 500 GET https://fuel-station-backend.onrender.com/api/tanks",
        "page": "Tanks",
        "sessionId": "session_1705314500000_q1w2e3r4t",
        "userAgent": "station-telemetry (Python 3.12.1; Linux)",
        "url": "http://localhost/dashboard",
        "data": {"requestId": "req_7", "responseTime": 12.5},
    }


@pytest.fixture
def app():
    """Create a Flask test app."""
    application = create_app(Config())
    application.config["TESTING"] = True
    return application


@pytest.fixture
def client(app):
    """Create a Flask test client."""
    return app.test_client()
