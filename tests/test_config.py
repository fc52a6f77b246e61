"""Tests for metaguards.config — GuardConfig frozen dataclass."""

import pytest

from metaguards.config import GuardConfig
from metaguards.errors import ConfigurationError


class TestGuardConfig:
    def test_defaults(self) -> None:
        cfg = GuardConfig()

        assert cfg.repeat_delay == 5.0
        assert cfg.dedupe_repeat is False
        assert cfg.log_repeat_errors is True

    def test_override(self) -> None:
        cfg = GuardConfig(repeat_delay=0.5, dedupe_repeat=True, log_repeat_errors=False)

        assert cfg.repeat_delay == 0.5
        assert cfg.dedupe_repeat is True
        assert cfg.log_repeat_errors is False

    def test_frozen(self) -> None:
        cfg = GuardConfig()

        with pytest.raises(AttributeError):
            cfg.repeat_delay = 1.0  # type: ignore[misc]

    def test_zero_delay_allowed(self) -> None:
        assert GuardConfig(repeat_delay=0).repeat_delay == 0

    def test_negative_delay_rejected(self) -> None:
        with pytest.raises(ConfigurationError, match="repeat_delay"):
            GuardConfig(repeat_delay=-1)
