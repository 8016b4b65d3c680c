"""Format the learned model state into Telegram HTML messages."""

import html

from src.memory.models import PerformanceWindow, RuleWeights, UserFeedback

FEEDBACK_LABELS = {
    "CONFIRM_GOLDEN": "✅ Confirmed golden dog",
    "DENY_GOLDEN": "❌ Denied golden dog",
    "REPORT_RUG": "⛔ Reported rug",
}


def format_weights(weights: RuleWeights) -> str:
    return (
        "<b>Learned weights</b>\n\n"
        f"Base multiplier: {weights.base_multiplier:.2f}\n"
        f"Golden dog bias: {weights.golden_dog_bias:.2f}\n"
        f"HIGH penalty: {weights.high_penalty:.2f}\n"
        f"MEDIUM penalty: {weights.medium_penalty:.2f}"
    )


def format_performance(windows: list[PerformanceWindow]) -> str:
    """One block per window, rules sorted by id."""
    lines = ["<b>Rule performance</b>"]
    for window in windows:
        lines.append(f"\n<b>{window.window}</b>")
        if not window.by_rule:
            lines.append("  no resolved outcomes")
            continue
        for perf in sorted(window.by_rule, key=lambda p: p.rule_id):
            lines.append(
                f"  {html.escape(perf.rule_id)}: {perf.accuracy * 100:.0f}% "
                f"({perf.correct:g}/{perf.total:g})"
            )
    return "\n".join(lines)


def format_feedback_ack(feedback: UserFeedback, weights: RuleWeights) -> str:
    label = FEEDBACK_LABELS.get(feedback.feedback_type, feedback.feedback_type)
    return (
        f"{label}\n"
        f"<code>{html.escape(feedback.token_address)}</code>\n\n"
        f"Weight applied: {feedback.feedback_weight:.3f}\n"
        f"Golden dog bias now {weights.golden_dog_bias:.2f}"
    )
