"""Learned weights and rolling rule accuracy from the memory document.

Usage:
    python scripts/performance_report.py
    python scripts/performance_report.py --json
    python scripts/performance_report.py --memory-path /tmp/memory.json
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path

# Ensure project root is in path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from config.settings import settings  # noqa: E402
from src.memory.models import MemoryState, PerformanceWindow  # noqa: E402
from src.memory.service import AdaptiveMemory  # noqa: E402
from src.memory.store import JsonFileMemoryStore  # noqa: E402


def print_report(state: MemoryState, windows: list[PerformanceWindow]) -> None:
    w = state.weights
    print("=" * 60)
    print("EASYMEME MEMORY REPORT")
    print("=" * 60)
    print(f"Revision: {state.revision}   Updated: {state.updated_at}")
    print(
        f"Outcomes: {len(state.outcomes)}   Feedbacks: {len(state.feedbacks)}   "
        f"Users: {len(state.user_reputations)}"
    )

    print("\n--- WEIGHTS ---")
    print(f"  base_multiplier  {w.base_multiplier:8.2f}")
    print(f"  golden_dog_bias  {w.golden_dog_bias:8.2f}")
    print(f"  high_penalty     {w.high_penalty:8.2f}")
    print(f"  medium_penalty   {w.medium_penalty:8.2f}")

    for window in windows:
        print(f"\n--- RULE ACCURACY ({window.window}) ---")
        if not window.by_rule:
            print("  (no resolved outcomes)")
            continue
        print(f"  {'Rule':<28} {'Correct':>8} {'Total':>8} {'Acc':>7}")
        for perf in sorted(window.by_rule, key=lambda p: p.rule_id):
            print(
                f"  {perf.rule_id:<28} {perf.correct:>8.2f} {perf.total:>8.2f} "
                f"{perf.accuracy * 100:>6.1f}%"
            )


async def main() -> None:
    parser = argparse.ArgumentParser(description="Print learned weights and rule accuracy")
    parser.add_argument("--json", action="store_true", help="Print the report as JSON")
    parser.add_argument(
        "--memory-path",
        type=Path,
        default=None,
        help="Read this memory file instead of the configured backend",
    )
    args = parser.parse_args()

    if args.memory_path:
        memory = AdaptiveMemory(JsonFileMemoryStore(args.memory_path))
    else:
        memory = AdaptiveMemory.from_settings(settings)

    try:
        state = await memory.load_state()
        windows = await memory.get_performance_report()
    finally:
        await memory.close()

    if args.json:
        print(json.dumps({
            "revision": state.revision,
            "weights": state.weights.to_json_dict(),
            "windows": [w.to_json_dict() for w in windows],
        }, indent=2))
        return

    print_report(state, windows)


if __name__ == "__main__":
    asyncio.run(main())
