"""
Unit tests for configuration management.
"""

import pytest
import sys
import os
from unittest.mock import Mock

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "..", "rplugin", "python3"))

from jupygate.core.config import get_gateways, get_request_timeout, parse_gateways


def nvim_with_vars(values):
    mock_nvim = Mock()
    mock_nvim.vars.get = Mock(side_effect=lambda key, default=None: values.get(key, default))
    return mock_nvim


class TestConfiguration:
    """Test cases for configuration utilities."""

    def test_get_request_timeout_default(self):
        mock_nvim = nvim_with_vars({})
        assert get_request_timeout(mock_nvim, Mock()) == 10.0

    def test_get_request_timeout_custom(self):
        mock_nvim = nvim_with_vars({"jupygate_request_timeout": 3})
        assert get_request_timeout(mock_nvim, Mock()) == 3.0

    def test_get_request_timeout_error_fallback(self):
        mock_nvim = Mock()
        mock_nvim.vars.get = Mock(side_effect=Exception("Test error"))
        mock_logger = Mock()

        assert get_request_timeout(mock_nvim, mock_logger) == 10.0
        mock_logger.warning.assert_called_once()

    def test_get_gateways(self):
        mock_nvim = nvim_with_vars({
            "jupygate_gateways": [
                {"name": "Local", "options": {"baseUrl": "http://localhost:8888", "token": "abc"}},
                {"name": "Cluster", "options": {"baseUrl": "https://hub.example.com/user/me"}},
            ],
            "jupygate_request_timeout": 5,
        })
        gateways = get_gateways(mock_nvim, Mock())

        assert [g.name for g in gateways] == ["Local", "Cluster"]
        assert gateways[0].options.token == "abc"
        assert gateways[1].options.base_url == "https://hub.example.com/user/me"
        assert gateways[1].options.request_timeout == 5.0

    def test_get_gateways_unset(self):
        assert get_gateways(nvim_with_vars({}), Mock()) == []

    def test_get_gateways_error_fallback(self):
        mock_nvim = Mock()
        mock_nvim.vars.get = Mock(side_effect=Exception("Test error"))
        mock_logger = Mock()

        assert get_gateways(mock_nvim, mock_logger) == []
        mock_logger.warning.assert_called()

    def test_parse_gateways_skips_malformed_entries(self):
        mock_logger = Mock()
        gateways = parse_gateways([
            {"name": "ok", "options": {"baseUrl": "http://gw"}},
            {"options": {"baseUrl": "http://no-name"}},
            {"name": "no-url", "options": {}},
            "not a table",
        ], mock_logger)

        assert [g.name for g in gateways] == ["ok"]
        assert mock_logger.warning.call_count == 3

    def test_parse_gateways_rejects_non_list(self):
        mock_logger = Mock()
        assert parse_gateways({"name": "x"}, mock_logger) == []
        mock_logger.warning.assert_called_once()


if __name__ == "__main__":
    pytest.main([__file__])
