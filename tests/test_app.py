"""Tests for application entry point: structlog config, service initialization, and app creation."""

from __future__ import annotations

import inspect
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock, patch

import structlog
from fastapi import FastAPI
from pydantic import SecretStr

from triage.app import configure_logging, create_app, initialize_services
from triage.batch.orchestrator import BatchOrchestrator
from triage.config import Settings
from triage.state.classified import SqliteClassifiedEmailStore
from triage.state.notifier import ProgressNotifier
from triage.state.schema import close_database
from triage.state.store import SqliteProgressStore


def _reset_structlog() -> None:
    """Reset structlog so cached loggers don't leak between tests."""
    structlog.reset_defaults()


def _base_settings(tmp_path: Path, **overrides: Any) -> Settings:
    """Build a Settings instance pointing the database to tmp_path.

    By default all optional credentials are empty so no external services
    are initialized.  Pass keyword overrides to customise.
    """
    defaults: dict[str, Any] = {
        "database_path": tmp_path / "triage.db",
        "google_token_path": tmp_path / "nonexistent-token.json",
        "anthropic_api_key": SecretStr(""),
    }
    defaults.update(overrides)
    return Settings(_env_file=None, **defaults)  # type: ignore[call-arg]


class TestConfigureLogging:
    """Tests for structlog configuration in dev and production modes."""

    def test_development_mode_uses_console_renderer(self) -> None:
        _reset_structlog()
        configure_logging(production=False)
        processors = structlog.get_config()["processors"]
        assert any(isinstance(p, structlog.dev.ConsoleRenderer) for p in processors)

    def test_production_mode_uses_json_renderer(self) -> None:
        _reset_structlog()
        configure_logging(production=True)
        processors = structlog.get_config()["processors"]
        assert any(isinstance(p, structlog.processors.JSONRenderer) for p in processors)

    def test_default_is_development_mode(self) -> None:
        _reset_structlog()
        configure_logging()
        processors = structlog.get_config()["processors"]
        assert any(isinstance(p, structlog.dev.ConsoleRenderer) for p in processors)

    def test_service_name_bound(self) -> None:
        _reset_structlog()
        structlog.contextvars.clear_contextvars()
        configure_logging()
        assert structlog.contextvars.get_contextvars()["service"] == "triage"
        structlog.contextvars.clear_contextvars()


class TestInitializeServices:
    """Tests for service initialization with mocked external dependencies."""

    def test_creates_database_and_stores(self, tmp_path: Path) -> None:
        _reset_structlog()
        configure_logging(production=False)
        db_path = tmp_path / "test_triage.db"
        settings = _base_settings(tmp_path, database_path=db_path)

        services = initialize_services(settings)

        assert db_path.exists()
        assert isinstance(services["progress_store"], SqliteProgressStore)
        assert isinstance(services["classified_store"], SqliteClassifiedEmailStore)
        assert isinstance(services["notifier"], ProgressNotifier)
        assert services["background_tasks"] == set()
        assert services["_settings"] is settings

        close_database(services["db_conn"])

    def test_database_path_parent_created(self, tmp_path: Path) -> None:
        _reset_structlog()
        configure_logging(production=False)
        custom_path = tmp_path / "custom" / "triage.db"
        settings = _base_settings(tmp_path, database_path=custom_path)

        services = initialize_services(settings)

        assert custom_path.exists()

        close_database(services["db_conn"])

    def test_classifier_none_without_key(self, tmp_path: Path) -> None:
        """No classifier (and so no orchestrator) when anthropic_api_key is not set."""
        _reset_structlog()
        configure_logging(production=False)
        settings = _base_settings(tmp_path)

        services = initialize_services(settings)

        assert services["classifier"] is None
        assert services["orchestrator"] is None

        close_database(services["db_conn"])

    def test_classifier_initialized_with_api_key(self, tmp_path: Path) -> None:
        """Classifier and orchestrator are created when anthropic_api_key is set."""
        _reset_structlog()
        configure_logging(production=False)
        settings = _base_settings(
            tmp_path,
            anthropic_api_key=SecretStr("test-key"),
            max_batch_size=10,
        )

        with patch(
            "triage.llm.client.get_anthropic_client",
            return_value=MagicMock(),
        ) as mock_factory:
            services = initialize_services(settings)

        mock_factory.assert_called_once_with("test-key")
        assert services["classifier"] is not None
        assert services["classifier"].model == settings.classification_model
        assert isinstance(services["orchestrator"], BatchOrchestrator)

        close_database(services["db_conn"])

    def test_calendar_none_without_token(self, tmp_path: Path) -> None:
        _reset_structlog()
        configure_logging(production=False)
        settings = _base_settings(tmp_path)

        services = initialize_services(settings)

        assert services["calendar"] is None

        close_database(services["db_conn"])

    def test_calendar_initialized_with_token(self, tmp_path: Path) -> None:
        """GoogleCalendarClient is created when google_token_path exists."""
        _reset_structlog()
        configure_logging(production=False)
        token_path = tmp_path / "token.json"
        token_path.write_text("{}")
        settings = _base_settings(tmp_path, google_token_path=token_path)

        mock_calendar = MagicMock()

        with (
            patch("triage.auth.credentials.get_google_credentials", return_value=MagicMock()),
            patch("triage.auth.credentials.get_calendar_service", return_value=MagicMock()),
            patch("triage.calendar.client.GoogleCalendarClient", return_value=mock_calendar),
        ):
            services = initialize_services(settings)

        assert services["calendar"] is mock_calendar

        close_database(services["db_conn"])

    def test_calendar_failure_is_not_fatal(self, tmp_path: Path) -> None:
        _reset_structlog()
        configure_logging(production=False)
        token_path = tmp_path / "token.json"
        token_path.write_text("{}")
        settings = _base_settings(tmp_path, google_token_path=token_path)

        with patch(
            "triage.auth.credentials.get_google_credentials",
            side_effect=RuntimeError("token revoked"),
        ):
            services = initialize_services(settings)

        assert services["calendar"] is None

        close_database(services["db_conn"])


class TestCreateApp:
    """Tests for FastAPI app creation."""

    def test_returns_fastapi_instance(self, tmp_path: Path) -> None:
        _reset_structlog()
        configure_logging(production=False)
        services = initialize_services(_base_settings(tmp_path))

        app = create_app(services)

        assert isinstance(app, FastAPI)
        assert app.router.lifespan_context is not None

        close_database(services["db_conn"])

    def test_no_deprecated_on_event(self) -> None:
        """Verify deprecated on_event pattern is not used in create_app."""
        source = inspect.getsource(create_app)
        assert "on_event" not in source

    def test_routes_registered(self, tmp_path: Path) -> None:
        _reset_structlog()
        configure_logging(production=False)
        services = initialize_services(_base_settings(tmp_path))

        app = create_app(services)

        route_paths = {route.path for route in app.routes}
        assert {
            "/health",
            "/ready",
            "/metrics",
            "/api/classify/batch",
            "/api/classify/progress/{session_id}",
            "/api/classify/progress/{session_id}/events",
            "/api/priority/score",
            "/api/priority/rank",
            "/api/meetings/detect",
            "/api/meetings/suggest-slots",
        } <= route_paths

        close_database(services["db_conn"])

    def test_settings_stored_on_app_state(self, tmp_path: Path) -> None:
        _reset_structlog()
        configure_logging(production=False)
        settings = _base_settings(tmp_path)
        services = initialize_services(settings)

        app = create_app(services)

        assert app.state.settings is settings
        assert app.state.services is services

        close_database(services["db_conn"])


class TestMainImport:
    """Test that main() can be imported without side effects."""

    def test_main_importable(self) -> None:
        from triage.app import main, run

        assert callable(main)
        assert callable(run)
