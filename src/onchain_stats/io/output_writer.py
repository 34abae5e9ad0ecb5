from __future__ import annotations

import json
from decimal import Decimal
from pathlib import Path
from typing import Sequence

from onchain_stats.core.models import RankedEntry
from onchain_stats.io.schemas import ranked_to_list

WEI_PER_ETH = Decimal("1000000000000000000")


def write_ranked_json(
    entries: Sequence[RankedEntry],
    out_dir: str,
    filename: str,
    value_key: str,
) -> str:
    p = Path(out_dir)
    p.mkdir(parents=True, exist_ok=True)

    out_path = p / filename
    with out_path.open("w", encoding="utf-8") as f:
        json.dump(ranked_to_list(entries, value_key), f, indent=2)

    return str(out_path)


def write_summary_md(
    entries: Sequence[RankedEntry],
    out_dir: str,
    title: str,
    value_label: str,
    filename: str = "summary.md",
    as_ether: bool = False,
) -> str:
    """
    Short Markdown table of the top entries.
    """
    p = Path(out_dir)
    p.mkdir(parents=True, exist_ok=True)

    out_path = p / filename

    def fmt(value: int) -> str:
        if as_ether:
            return f"{Decimal(value) / WEI_PER_ETH:.6f}"
        return str(value)

    top = list(entries)[:25]

    lines = [f"# {title}", ""]
    lines.append(f"Entries: {len(entries)}")
    lines.append("")

    if not top:
        lines.append("_Nothing to rank in this window._")
    else:
        lines.append(f"| # | Address | {value_label} |")
        lines.append("|---|---------|---|")
        for i, e in enumerate(top, start=1):
            lines.append(f"| {i} | `{e.address}` | {fmt(e.value)} |")
        if len(entries) > len(top):
            lines.append("")
            lines.append(f"_{len(entries) - len(top)} more in the JSON output._")

    out_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return str(out_path)
