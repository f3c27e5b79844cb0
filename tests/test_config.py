"""Tests for settings validation, logging setup and the error taxonomy."""

import json

import pytest
import structlog
from pydantic import ValidationError

from rfq_match.core.config import Settings
from rfq_match.core.errors import (
    CandidateNotFound,
    InvalidOpportunity,
    RepositoryUnavailable,
    RFQMatchError,
    WeightVectorInvariantViolation,
)
from rfq_match.core.logging import setup_logging
from rfq_match.modules.scoring.weights import WeightVector


@pytest.fixture
def reset_structlog():
    yield
    structlog.reset_defaults()


class TestSettings:
    def test_defaults(self):
        s = Settings(_env_file=None)
        assert s.MATCH_CACHE_TTL_SECONDS == 300.0
        assert s.DEFAULT_MIN_SCORE == 60.0
        assert s.FACILITATION_LIMIT == 5

    def test_production_requires_repository_url(self):
        with pytest.raises(ValidationError, match="REPOSITORY_URL"):
            Settings(_env_file=None, APP_ENV="production", REPOSITORY_URL=None)

    def test_production_with_repository(self):
        s = Settings(
            _env_file=None, APP_ENV="production", REPOSITORY_URL="https://directory.test"
        )
        assert s.REPOSITORY_URL == "https://directory.test"

    def test_unknown_log_format(self):
        with pytest.raises(ValidationError, match="LOG_FORMAT"):
            Settings(_env_file=None, LOG_FORMAT="xml")

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("SCORING_CONCURRENCY", "3")
        assert Settings(_env_file=None).SCORING_CONCURRENCY == 3


class TestLogging:
    def test_json_output(self, capsys, reset_structlog):
        setup_logging(Settings(_env_file=None, LOG_FORMAT="json", LOG_LEVEL="INFO"))
        structlog.get_logger().info("matches_computed", opportunity_id="opp-1", matched=3)

        line = capsys.readouterr().out.strip().splitlines()[-1]
        record = json.loads(line)
        assert record["event"] == "matches_computed"
        assert record["opportunity_id"] == "opp-1"
        assert record["level"] == "info"
        assert "timestamp" in record

    def test_level_filters_debug(self, capsys, reset_structlog):
        setup_logging(Settings(_env_file=None, LOG_FORMAT="json", LOG_LEVEL="WARNING"))
        structlog.get_logger().info("too_quiet")
        assert "too_quiet" not in capsys.readouterr().out

    def test_console_output(self, capsys, reset_structlog):
        setup_logging(Settings(_env_file=None, LOG_FORMAT="console"))
        structlog.get_logger().warning("in_memory_repositories", app_env="test")
        assert "in_memory_repositories" in capsys.readouterr().out


class TestErrors:
    def test_to_dict(self):
        err = RepositoryUnavailable("directory down", detail={"path": "/businesses"})
        assert err.to_dict() == {
            "error": "repository_unavailable",
            "message": "directory down",
            "detail": {"path": "/businesses"},
        }

    def test_hierarchy(self):
        assert issubclass(InvalidOpportunity, RFQMatchError)
        assert issubclass(CandidateNotFound, LookupError)

    def test_weight_vector_must_sum_to_one(self):
        with pytest.raises(WeightVectorInvariantViolation):
            WeightVector("bad", {"a": 0.5, "b": 0.4})
        with pytest.raises(WeightVectorInvariantViolation):
            WeightVector("negative", {"a": 1.5, "b": -0.5})
