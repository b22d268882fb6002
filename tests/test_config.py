"""
Tests for configuration module.
"""

import pytest
from pydantic import ValidationError

from async_review_pipeline.config.settings import PipelineSettings, load_settings
from async_review_pipeline.errors.models import ErrorKind
from async_review_pipeline.processing.modes import DEFAULT_SEQUENTIAL_THRESHOLD


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    """Run each test without pipeline env vars or a local .env file."""
    monkeypatch.chdir(tmp_path)
    for name in list(PipelineSettings.model_fields):
        monkeypatch.delenv(f"REVIEW_PIPELINE_{name.upper()}", raising=False)


class TestPipelineSettings:
    """Tests for PipelineSettings."""

    @pytest.mark.unit
    def test_defaults(self):
        """Test default values."""
        settings = PipelineSettings()

        assert settings.force_sequential is False
        assert settings.force_parallel is False
        assert settings.sequential_threshold == DEFAULT_SEQUENTIAL_THRESHOLD
        assert settings.max_concurrency is None
        assert settings.max_retry_attempts == 3
        assert settings.base_retry_delay_ms == 1000
        assert settings.max_retry_delay_ms == 30000

    @pytest.mark.unit
    def test_env_vars(self, monkeypatch):
        """Test that settings load from prefixed environment variables."""
        monkeypatch.setenv("REVIEW_PIPELINE_MAX_CONCURRENCY", "8")
        monkeypatch.setenv("REVIEW_PIPELINE_FORCE_SEQUENTIAL", "true")

        settings = PipelineSettings()

        assert settings.max_concurrency == 8
        assert settings.force_sequential is True

    @pytest.mark.unit
    def test_env_file(self, tmp_path):
        """Test that a .env file in the working directory is read."""
        (tmp_path / ".env").write_text(
            "REVIEW_PIPELINE_MAX_RETRY_ATTEMPTS=5\nUNRELATED_SETTING=1\n"
        )

        assert PipelineSettings().max_retry_attempts == 5

    @pytest.mark.unit
    def test_rejects_small_multiplier(self):
        """Test that the backoff multiplier must leave room for jitter."""
        with pytest.raises(ValidationError):
            PipelineSettings(retry_backoff_multiplier=1.1)

    @pytest.mark.unit
    def test_rejects_max_delay_below_base(self):
        """Test the delay bounds check."""
        with pytest.raises(ValidationError, match="max_retry_delay_ms"):
            PipelineSettings(base_retry_delay_ms=5000, max_retry_delay_ms=1000)

    @pytest.mark.unit
    def test_rejects_zero_concurrency(self):
        """Test max_concurrency validation."""
        with pytest.raises(ValidationError):
            PipelineSettings(max_concurrency=0)

    @pytest.mark.unit
    def test_component_options(self):
        """Test the helpers that build component options."""
        settings = PipelineSettings(
            force_parallel=True,
            sequential_threshold=10,
            continue_on_error=False,
            max_errors=2,
            enable_fallback=False,
            max_retry_attempts=4,
            file_timeout_seconds=2.5,
        )

        overrides = settings.mode_overrides()
        assert (overrides.force_parallel, overrides.threshold) == (True, 10)

        sequential = settings.sequential_options()
        assert (sequential.continue_on_error, sequential.max_errors) == (False, 2)

        retry = settings.retry_options()
        assert retry.max_attempts == 4
        assert retry.enable_fallback is False
        assert retry.timeout_seconds == 2.5

    @pytest.mark.unit
    def test_backoff_policy(self):
        """Test that the configured schedule becomes the default backoff."""
        settings = PipelineSettings(base_retry_delay_ms=100, max_retry_delay_ms=800)
        policy = settings.backoff_policy()

        default = policy.settings_for(ErrorKind.UNKNOWN)
        assert (default.base_delay_ms, default.max_delay_ms) == (100, 800)
        assert policy.settings_for(ErrorKind.SERVICE_UNAVAILABLE).base_delay_ms == 5000


class TestLoadSettings:
    """Tests for load_settings."""

    @pytest.mark.unit
    def test_returns_fresh_instances(self):
        """Test that no instance is shared between calls."""
        assert load_settings() is not load_settings()

    @pytest.mark.unit
    def test_overrides_take_precedence(self, monkeypatch):
        """Test that explicit overrides beat the environment."""
        monkeypatch.setenv("REVIEW_PIPELINE_MAX_CONCURRENCY", "8")

        assert load_settings(max_concurrency=2).max_concurrency == 2
