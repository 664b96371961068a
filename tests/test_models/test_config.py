"""Tests for configuration models."""

import pytest
from pydantic import ValidationError

from fleetform.models.config import AgentConfig, DockerConfig, FleetformConfig, PlannerConfig


class TestAgentConfig:
    """Test AgentConfig model."""

    def test_default_values(self):
        """Test default agent configuration values."""
        config = AgentConfig()

        assert config.socket_path == "./state/fleetform-agent.sock"
        assert config.host is None
        assert config.port == 8470
        assert config.reconciliation_interval == 30
        assert config.log_level == "INFO"
        assert config.config_dir == "./configs"
        assert config.state_dir == "./state"
        assert config.continue_on_error is False

    def test_custom_values(self):
        """Test custom agent configuration values."""
        config = AgentConfig(
            socket_path="/tmp/agent.sock",
            reconciliation_interval=60,
            log_level="debug"
        )

        assert config.socket_path == "/tmp/agent.sock"
        assert config.reconciliation_interval == 60
        assert config.log_level == "DEBUG"

    def test_log_level_validation(self):
        """Test log level validation."""
        for level in ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]:
            config = AgentConfig(log_level=level)
            assert config.log_level == level.upper()

        with pytest.raises(ValidationError):
            AgentConfig(log_level="VERBOSE")

    def test_reconciliation_interval_minimum(self):
        with pytest.raises(ValidationError):
            AgentConfig(reconciliation_interval=1)


class TestFleetformConfig:
    """Test FleetformConfig model."""

    def test_defaults(self):
        config = FleetformConfig()

        assert config.prefix == "ff_"
        assert isinstance(config.agent, AgentConfig)
        assert config.docker == DockerConfig()
        assert config.planner == PlannerConfig()
        assert config.planner.batch_image_pulls is False
        assert config.planner.batch_network_attaches is False

    def test_nested_sections(self):
        config = FleetformConfig(
            prefix="prod-",
            agent={"continue_on_error": True},
            docker={"base_url": "unix:///var/run/docker.sock", "timeout": 5},
            planner={"batch_image_pulls": True},
        )

        assert config.prefix == "prod-"
        assert config.agent.continue_on_error is True
        assert config.docker.base_url == "unix:///var/run/docker.sock"
        assert config.docker.timeout == 5
        assert config.planner.batch_image_pulls is True

    @pytest.mark.parametrize("prefix", ["", "has space", "slash/", "quote'"])
    def test_invalid_prefix(self, prefix):
        with pytest.raises(ValidationError):
            FleetformConfig(prefix=prefix)

    def test_unknown_sections_ignored(self):
        config = FleetformConfig(systemd={"machines_dir": "/tmp"})
        assert not hasattr(config, "systemd")
