"""Analysis worker: classify pending tokens and submit the verdicts.

Each cycle: fetch pending tokens -> classify -> fill goldenDogScore from the
learned weights -> submit -> notify golden dogs. A failing token is logged
and skipped; the rest of the batch still goes through.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass

from loguru import logger

from src.bot.notifier import GoldenDogNotice, TelegramNotifier
from src.memory.service import AdaptiveMemory
from src.scoring.risk_mapper import classify
from src.server_api.client import EasyMemeClient
from src.server_api.exceptions import EasyMemeError


@dataclass
class CycleStats:
    fetched: int = 0
    submitted: int = 0
    golden_dogs: int = 0
    failed: int = 0


async def run_analysis_cycle(
    client: EasyMemeClient,
    memory: AdaptiveMemory,
    notifier: TelegramNotifier,
    *,
    limit: int = 10,
) -> CycleStats:
    stats = CycleStats()
    tokens = await client.fetch_pending_tokens(limit=limit)
    stats.fetched = len(tokens)

    for token in tokens:
        try:
            analysis = classify(token)
            analysis = await memory.ensure_golden_dog_score(analysis)
            await client.submit_analysis(token.address, analysis)
        except EasyMemeError as e:
            stats.failed += 1
            logger.warning(f"[WORKER] Submit failed for {token.address[:12]}: {e}")
            continue
        except Exception as e:
            stats.failed += 1
            logger.error(f"[WORKER] Analysis failed for {token.address[:12]}: {e}")
            continue

        stats.submitted += 1
        logger.debug(
            f"[WORKER] {token.symbol or token.address[:12]}: "
            f"{analysis.risk_level} risk={analysis.risk_score:g} "
            f"golden={analysis.is_golden_dog} score={analysis.golden_dog_score}"
        )

        if analysis.is_golden_dog:
            stats.golden_dogs += 1
            await notifier.notify_golden_dog(
                GoldenDogNotice(
                    token_address=token.address,
                    token_symbol=token.symbol,
                    golden_dog_score=analysis.golden_dog_score,
                    risk_score=analysis.risk_score,
                    decision_reason=analysis.decision_reason or analysis.recommendation,
                )
            )

    if stats.fetched:
        logger.info(
            f"[WORKER] Cycle: {stats.fetched} pending, {stats.submitted} submitted, "
            f"{stats.golden_dogs} golden, {stats.failed} failed"
        )
    return stats


async def run_worker(
    client: EasyMemeClient,
    memory: AdaptiveMemory,
    notifier: TelegramNotifier,
    *,
    interval_sec: float = 60,
    limit: int = 10,
) -> None:
    """Run analysis cycles forever, ``interval_sec`` apart."""
    logger.info(f"[WORKER] Started (interval={interval_sec}s, batch={limit})")
    while True:
        try:
            await run_analysis_cycle(client, memory, notifier, limit=limit)
        except EasyMemeError as e:
            logger.error(f"[WORKER] Fetch error: {e}")
        except Exception as e:
            logger.error(f"[WORKER] Unexpected cycle error: {e}")
        await asyncio.sleep(interval_sec)
