"""Tests for configuration defaults and env overrides."""

from __future__ import annotations

from datadna.core.config import AppSettings, ExecutionConfig, LearningConfig, ReasoningConfig, ScoringConfig


def test_default_settings():
    settings = AppSettings()
    assert settings.environment == "dev"
    assert settings.backend == "memory"
    assert settings.reasoning.provider == "mock"
    assert settings.reasoning.enabled is False


def test_scoring_weights_default():
    config = ScoringConfig()
    assert config.pattern_weight == 0.3
    assert config.name_weight == 0.4
    assert config.synonym_weight == 0.25
    assert config.containment_weight == 0.1
    assert config.candidate_floor == 0.2
    assert config.learned_base == 0.5
    assert config.learned_max_bonus == 0.5


def test_execution_defaults():
    config = ExecutionConfig()
    assert config.batch_size == 500
    assert config.abort_on_first_error is False
    assert config.enforce_npi_checksum is False


def test_reasoning_env_override(monkeypatch):
    monkeypatch.setenv("DATADNA_REASONING_ENABLED", "true")
    monkeypatch.setenv("DATADNA_REASONING_CONFIDENCE_CAP", "0.8")
    config = ReasoningConfig()
    assert config.enabled is True
    assert config.confidence_cap == 0.8


def test_learning_env_override(monkeypatch):
    monkeypatch.setenv("DATADNA_LEARNING_MAX_RETRIES", "9")
    assert LearningConfig().max_retries == 9
