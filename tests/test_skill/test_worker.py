"""Tests for the analysis worker cycle."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from src.scoring.models import PendingToken
from src.server_api.exceptions import EasyMemeApiError
from src.skill.worker import run_analysis_cycle


def _client(tokens: list[PendingToken]) -> MagicMock:
    client = MagicMock()
    client.fetch_pending_tokens = AsyncMock(return_value=tokens)
    client.submit_analysis = AsyncMock(return_value={"ok": True})
    return client


def _notifier() -> MagicMock:
    notifier = MagicMock()
    notifier.notify_golden_dog = AsyncMock()
    return notifier


@pytest.mark.asyncio
async def test_cycle_submits_scored_analyses(memory, make_token):
    golden = PendingToken.model_validate(make_token())
    honeypot = PendingToken.model_validate(make_token(address="0xbad", goplus={"is_honeypot": "1"}))
    client = _client([golden, honeypot])
    notifier = _notifier()

    stats = await run_analysis_cycle(client, memory, notifier, limit=5)

    assert (stats.fetched, stats.submitted, stats.golden_dogs, stats.failed) == (2, 2, 1, 0)
    client.fetch_pending_tokens.assert_awaited_once_with(limit=5)

    submitted = {call.args[0]: call.args[1] for call in client.submit_analysis.await_args_list}
    # 80 + 12 bias
    assert submitted[golden.address].golden_dog_score == 92
    # 50 - 6 half bias - 15 HIGH
    assert submitted["0xbad"].golden_dog_score == 29
    assert submitted["0xbad"].is_golden_dog is False

    notice = notifier.notify_golden_dog.await_args.args[0]
    assert notice.token_address == golden.address
    assert notice.token_symbol == "DOGE2"
    assert notice.golden_dog_score == 92


@pytest.mark.asyncio
async def test_cycle_skips_failed_submissions(memory, make_token):
    tokens = [
        PendingToken.model_validate(make_token(address="0x1")),
        PendingToken.model_validate(make_token(address="0x2")),
    ]
    client = _client(tokens)
    client.submit_analysis.side_effect = [EasyMemeApiError(500, "Internal Server Error"), {"ok": True}]
    notifier = _notifier()

    stats = await run_analysis_cycle(client, memory, notifier)

    assert stats.submitted == 1
    assert stats.failed == 1
    assert notifier.notify_golden_dog.await_count == 1
    assert notifier.notify_golden_dog.await_args.args[0].token_address == "0x2"


@pytest.mark.asyncio
async def test_empty_cycle(memory):
    stats = await run_analysis_cycle(_client([]), memory, _notifier())
    assert stats.fetched == 0
    assert stats.submitted == 0
