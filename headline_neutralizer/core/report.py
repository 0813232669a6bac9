"""
Audit report generation
"""
from __future__ import annotations

from typing import Optional, Sequence

from .models import Candidate, ChangeRecord, Stats
from .usage import UsageTracker


def render_audit(
    stats: Stats,
    changes: Sequence[ChangeRecord],
    cache_size: int = 0,
    usage: Optional[UsageTracker] = None,
    host: str = "",
) -> str:
    """Render session counters and the change list as markdown"""
    title = f"# Headline audit: {host}" if host else "# Headline audit"
    lines = [title, ""]
    lines.append(
        f"- Total: {stats.total} (live {stats.live}, cache {stats.cache}), "
        f"batches: {stats.batches}"
    )
    lines.append(f"- Cache entries: {cache_size}")

    if usage is not None:
        lines.append(
            f"- API tokens: {usage.usage.input} in / {usage.usage.output} out "
            f"over {usage.usage.calls} calls"
        )
        lines.append(f"- Estimated cost: ${usage.cost():.4f} ({usage.pricing.model})")
    lines.append("")

    if not changes:
        lines.append("_No headlines changed._")
        return "\n".join(lines)

    lines.append("## Changes")
    lines.append("")
    for index, change in enumerate(changes, start=1):
        lines.append(f"{index}. [{change.source}] ({change.mode}) x{change.applied_count}")
        lines.append(f"   - before: {change.original}")
        lines.append(f"   - after: {change.rewritten}")
    return "\n".join(lines)


def render_candidates(candidates: Sequence[Candidate]) -> str:
    if not candidates:
        return "No candidates found."
    return "\n".join(str(candidate) for candidate in candidates)
