from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Mapping


@dataclass(frozen=True)
class SoftFailure:
    # A locally recovered failure; the procedure moved on to the next candidate.
    step: str
    target: str
    message: str


def format_summary(
    title: str,
    counts: Mapping[str, int],
    soft_failures: Iterable[SoftFailure] = (),
    *,
    dry_run: bool = False,
) -> str:
    # Human-readable operator output: one key=value line per affected-row count.
    lines = [f"{title}{' (dry run)' if dry_run else ''}"]
    for key in sorted(counts):
        lines.append(f"  {key}={counts[key]}")
    failures = list(soft_failures)
    lines.append(f"  soft_failures={len(failures)}")
    for failure in failures:
        lines.append(f"    - {failure.step} {failure.target}: {failure.message}")
    return "\n".join(lines)
