"""Tests for Gemini API client initialization."""

import pytest
from unittest.mock import patch, MagicMock

from bioquest.config import get_settings
from bioquest.services.gemini_client import get_gemini_client


class TestGeminiClient:
    """Test suite for Gemini client initialization."""

    def test_get_gemini_client_success(self):
        """Test successful Gemini client initialization with the configured key."""
        with patch('bioquest.services.gemini_client.genai.Client') as mock_client:
            mock_client_instance = MagicMock()
            mock_client.return_value = mock_client_instance

            client = get_gemini_client()

            mock_client.assert_called_once_with(api_key='test-gemini-api-key')
            assert client == mock_client_instance

    def test_caller_key_takes_precedence(self):
        """Test that a caller-supplied key overrides GEMINI_API_KEY."""
        with patch('bioquest.services.gemini_client.genai.Client') as mock_client:
            get_gemini_client("  user-key  ")

            mock_client.assert_called_once_with(api_key='user-key')

    def test_blank_caller_key_uses_fallback(self):
        """Test that a blank caller key falls back to the configured key."""
        with patch('bioquest.services.gemini_client.genai.Client') as mock_client:
            get_gemini_client("   ")

            mock_client.assert_called_once_with(api_key='test-gemini-api-key')

    def test_no_key_available(self, monkeypatch):
        """Test that ValueError is raised when no key is available at all."""
        monkeypatch.setenv('GEMINI_API_KEY', '')
        get_settings.cache_clear()

        with pytest.raises(ValueError) as exc_info:
            get_gemini_client()

        assert "API Key is not configured" in str(exc_info.value)
