"""Testes de integração para configuração do Celery."""

import pytest


@pytest.fixture(autouse=True)
def _celery_eager(settings):
    """Executa tasks de forma síncrona no processo de teste."""
    settings.CELERY_TASK_ALWAYS_EAGER = True
    settings.CELERY_TASK_EAGER_PROPAGATES = True


class TestCeleryConfig:
    """Verifica que o Celery carrega corretamente via Django."""

    def test_celery_app_is_importable(self):
        from config.celery import app

        assert app.main == "erp"

    def test_celery_app_exported_from_init(self):
        from config import celery_app

        assert celery_app.main == "erp"

    def test_celery_broker_url_configured(self, settings):
        assert settings.CELERY_BROKER_URL is not None
        assert "redis" in settings.CELERY_BROKER_URL

    def test_celery_result_backend_configured(self, settings):
        assert settings.CELERY_RESULT_BACKEND is not None
        assert "redis" in settings.CELERY_RESULT_BACKEND

    def test_celery_serializer_is_json(self, settings):
        assert settings.CELERY_TASK_SERIALIZER == "json"
        assert settings.CELERY_RESULT_SERIALIZER == "json"
        assert settings.CELERY_ACCEPT_CONTENT == ["json"]

    def test_celery_timezone_matches_django(self, settings):
        assert settings.CELERY_TIMEZONE == settings.TIME_ZONE


class TestOutboxSchedule:
    """Verifica o agendamento e a execução eager do publicador do outbox."""

    def test_publisher_is_scheduled(self, settings):
        entry = settings.CELERY_BEAT_SCHEDULE["publish-outbox-events"]
        assert entry["task"] == "core.publish_outbox_events"
        assert entry["schedule"] > 0

    def test_publisher_registered_under_task_name(self):
        from config.celery import app
        from modules.core import tasks  # noqa: F401

        assert "core.publish_outbox_events" in app.tasks

    def test_publisher_runs_eagerly_with_nothing_pending(self, settings):
        from modules.core.tasks import publish_outbox_events

        settings.ANALYTICS_EVENTS_URL = ""
        result = publish_outbox_events.delay()

        assert result.successful()
        assert result.result == {"published": 0, "failed": 0}
