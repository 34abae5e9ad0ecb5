from __future__ import annotations

import argparse
import dataclasses
import datetime as dt
import json
import logging
import sys
import time
from typing import Optional, Sequence

from onchain_stats.config import settings
from onchain_stats.core.errors import StatsError
from onchain_stats.core.models import AggregationConfig
from onchain_stats.services.stats_service import StatsService
from onchain_stats.io.output_writer import write_ranked_json, write_summary_md
from onchain_stats.io.schemas import block_to_dict, ranked_to_list, trace_to_dict

from onchain_stats.adapters.ledger.jsonrpc_ledger_adapter import JsonRpcLedgerAdapter
from onchain_stats.adapters.ledger.static_ledger_adapter import StaticLedgerAdapter


def _block_arg(value: str):
    if value == "latest":
        return value
    try:
        return int(value, 0)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not a block number: {value!r}")


def build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="onchain-stats", description="Contract and wallet rankings over EVM blocks")
    p.add_argument("--rpc-url", default=settings.RPC_URL, help="JSON-RPC endpoint of the node")
    p.add_argument("--use-static", action="store_true", help="Use static adapter (dev/testing)")
    p.add_argument("--verbose", "-v", action="store_true", help="Debug logging (shows dropped wallets)")
    sub = p.add_subparsers(dest="command", required=True)

    c = sub.add_parser("contracts", help="Rank contracts by interactions in a block range")
    c.add_argument("--start", type=int, required=True, help="First block (inclusive)")
    c.add_argument("--end", type=int, required=True, help="Last block (inclusive)")
    c.add_argument("--top", type=int, default=0, help="Keep only the top N entries (0=all)")
    c.add_argument("--out", default=None, help="Write contracts.json + summary.md to this folder")
    c.add_argument("--tolerate-missing-trace-calls", action="store_true",
                   default=settings.TRACE_MISSING_CALLS_AS_EMPTY,
                   help="Count a trace without a call list as zero internal calls")

    r = sub.add_parser("richest", help="Rank the wallets of a block by balance at that block")
    r.add_argument("--block", type=int, required=True, help="Reference block")
    r.add_argument("--top", type=int, default=0, help="Keep only the top N entries (0=all)")
    r.add_argument("--out", default=None, help="Write richest.json + summary.md to this folder")
    r.add_argument("--workers", type=int, default=settings.BALANCE_FETCH_WORKERS, help="Concurrent balance fetches (max 8)")
    r.add_argument("--deadline", type=float, default=settings.BALANCE_FETCH_DEADLINE_SEC,
                   help="Give up on balances still pending after this many seconds")

    sub.add_parser("latest-block", help="Print the latest block number")

    b = sub.add_parser("block", help="Print a block with its transactions")
    b.add_argument("--number", type=_block_arg, required=True, help="Block number or 'latest'")

    bal = sub.add_parser("balance", help="Print an address balance in wei")
    bal.add_argument("--address", required=True)
    bal.add_argument("--block", type=_block_arg, default="latest", help="Block number or 'latest'")

    t = sub.add_parser("trace", help="Print the internal calls of a transaction")
    t.add_argument("--tx-hash", required=True)

    sub.add_parser("accounts", help="Print the accounts managed by the node")
    return p


def _make_progress_reporter():
    start_time = time.time()

    def _ts() -> str:
        return dt.datetime.now().strftime("%H:%M:%S")

    def progress(event: str, data: dict) -> None:
        if event == "start":
            if data["kind"] == "contracts":
                print(f"[{_ts()}] Scanning blocks {data['start']}-{data['end']} for contract interactions")
            else:
                print(f"[{_ts()}] Ranking wallets of block {data['block']}")
            return
        if event == "fetched_blocks":
            print(f"Fetched {data['blocks']} block(s) • {data['txs']} transaction(s)")
            return
        if event == "wallets":
            print(f"Found {data['wallets']} wallet(s) (skipped {data['skipped']})")
            return
        if event == "balances":
            print(f"Fetched {data['fetched']} balance(s) (dropped {data['failed']})")
            return
        if event == "done":
            elapsed = time.time() - start_time
            print(f"[{_ts()}] Done in {elapsed:.1f}s • {data['entries']} entries")
            return
        if event == "error":
            print(f"[{_ts()}] Error: {data.get('message', 'Unknown error')}", file=sys.stderr)

    return progress


def _print_json(payload) -> None:
    print(json.dumps(payload, indent=2))


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_arg_parser().parse_args(argv)

    level = logging.DEBUG if args.verbose else getattr(logging, str(settings.LOG_LEVEL).upper(), logging.WARNING)
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    # Ports
    if args.use_static:
        ledger = StaticLedgerAdapter()
    else:
        ledger = JsonRpcLedgerAdapter(rpc_url=args.rpc_url)

    cfg = AggregationConfig()
    if args.command == "contracts":
        cfg = dataclasses.replace(cfg, top=args.top, tolerate_missing_trace_calls=args.tolerate_missing_trace_calls)
    elif args.command == "richest":
        if args.workers <= 0:
            print("--workers must be > 0", file=sys.stderr)
            return 2
        cfg = dataclasses.replace(cfg, top=args.top, balance_workers=args.workers, balance_deadline_sec=args.deadline)

    # Service
    svc = StatsService(ledger=ledger, cfg=cfg)
    progress = _make_progress_reporter()

    try:
        if args.command == "contracts":
            if args.start > args.end:
                print("--start must not be after --end", file=sys.stderr)
                return 2
            entries = svc.get_contract_interactions(args.start, args.end, on_progress=progress)
            return _emit_ranked(entries, args.out, "contracts.json", "interactions",
                                f"Contracts by interactions, blocks {args.start}-{args.end}", as_ether=False)

        if args.command == "richest":
            entries = svc.get_richest_wallets(args.block, on_progress=progress)
            return _emit_ranked(entries, args.out, "richest.json", "balance_wei",
                                f"Richest wallets at block {args.block}", as_ether=True)

        if args.command == "latest-block":
            print(svc.get_latest_block())
        elif args.command == "block":
            _print_json(block_to_dict(svc.get_block(args.number)))
        elif args.command == "balance":
            print(svc.get_balance(args.address, args.block))
        elif args.command == "trace":
            _print_json(trace_to_dict(svc.get_transaction_trace(args.tx_hash)))
        elif args.command == "accounts":
            _print_json(svc.get_accounts())
    except (StatsError, ValueError) as exc:
        progress("error", {"message": f"{exc.__class__.__name__}: {exc}"})
        return 1

    return 0


def _emit_ranked(entries, out_dir, filename, value_key, title, as_ether) -> int:
    if not out_dir:
        _print_json(ranked_to_list(entries, value_key))
        return 0

    # Outputs
    json_path = write_ranked_json(entries, out_dir, filename, value_key)
    summary_path = write_summary_md(
        entries,
        out_dir,
        title=title,
        value_label="Balance (ETH)" if as_ether else "Interactions",
        as_ether=as_ether,
    )
    print(f"Wrote: {json_path}")
    print(f"Wrote: {summary_path}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
