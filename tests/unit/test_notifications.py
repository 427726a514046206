"""Unit tests for the notification webhook client"""

import httpx
import pytest
from unittest.mock import AsyncMock, MagicMock, patch
from lot_financing.domain.events import notify_staff
from lot_financing.infrastructure.clients.notifications import WebhookNotificationSink

NOTIFICATION = notify_staff("Contract approved", "Contract #1 has been approved.", "contract_approved")


def _sink(max_retries: int = 3) -> WebhookNotificationSink:
    sink = WebhookNotificationSink(webhook_url="http://notifications.test/hook", timeout=1.0)
    sink.max_retries = max_retries
    sink.backoff_base = 0
    return sink


@patch("httpx.AsyncClient.post", new_callable=AsyncMock)
async def test_send_posts_payload(mock_post: AsyncMock):
    mock_post.return_value = MagicMock()

    await _sink().send(NOTIFICATION)

    mock_post.assert_awaited_once()
    args, kwargs = mock_post.call_args
    assert args[0] == "http://notifications.test/hook"
    assert kwargs["json"] == {
        "recipient": "staff",
        "title": "Contract approved",
        "message": "Contract #1 has been approved.",
        "category": "contract_approved",
    }


@patch("httpx.AsyncClient.post", new_callable=AsyncMock)
async def test_send_retries_network_errors(mock_post: AsyncMock):
    mock_post.side_effect = [
        httpx.ConnectError("connection refused"),
        httpx.ConnectError("connection refused"),
        MagicMock(),
    ]

    await _sink().send(NOTIFICATION)

    assert mock_post.await_count == 3


@patch("httpx.AsyncClient.post", new_callable=AsyncMock)
async def test_send_raises_after_final_attempt(mock_post: AsyncMock):
    mock_post.side_effect = httpx.ConnectError("connection refused")

    with pytest.raises(httpx.ConnectError):
        await _sink(max_retries=2).send(NOTIFICATION)

    assert mock_post.await_count == 2
