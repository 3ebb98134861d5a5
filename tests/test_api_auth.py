"""Tests for handover API bearer token authentication."""

import pytest
from unittest.mock import patch, MagicMock
from fastapi import HTTPException

from handover_engine.api.auth import get_workspace_id, verify_worker_token


def _settings():
    mock_settings = MagicMock()
    mock_settings.WORKER_API_KEY = "test-secret-key"
    return mock_settings


class TestBearerAuth:
    @pytest.mark.asyncio
    async def test_valid_token_passes(self):
        with patch("handover_engine.api.auth.get_settings", return_value=_settings()):
            await verify_worker_token(authorization="Bearer test-secret-key")

    @pytest.mark.asyncio
    async def test_invalid_token_raises_401(self):
        with patch("handover_engine.api.auth.get_settings", return_value=_settings()):
            with pytest.raises(HTTPException) as exc_info:
                await verify_worker_token(authorization="Bearer wrong-key")
            assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_missing_bearer_prefix_raises_401(self):
        with patch("handover_engine.api.auth.get_settings", return_value=_settings()):
            with pytest.raises(HTTPException) as exc_info:
                await verify_worker_token(authorization="test-secret-key")
            assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_scheme_is_case_insensitive(self):
        with patch("handover_engine.api.auth.get_settings", return_value=_settings()):
            await verify_worker_token(authorization="bearer test-secret-key")

    @pytest.mark.asyncio
    async def test_unconfigured_key_rejects_everything(self):
        settings = _settings()
        settings.WORKER_API_KEY = ""
        with patch("handover_engine.api.auth.get_settings", return_value=settings):
            with pytest.raises(HTTPException) as exc_info:
                await verify_worker_token(authorization="Bearer ")
            assert exc_info.value.status_code == 503


class TestWorkspaceHeader:
    @pytest.mark.asyncio
    async def test_trimmed(self):
        assert await get_workspace_id(x_workspace_id=" ws-1 ") == "ws-1"

    @pytest.mark.asyncio
    async def test_blank_rejected(self):
        with pytest.raises(HTTPException) as exc_info:
            await get_workspace_id(x_workspace_id="  ")
        assert exc_info.value.status_code == 400
