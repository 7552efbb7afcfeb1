"""
read_load.py: async load script that replays redirects

Reads the codes written by write_load.py and hits GET /{code} without
following redirects; a 302 counts as success. Pass --analytics to fetch the
per-code daily series afterwards and compare it with the number of hits sent.

Usage:
  python read_load.py --base http://127.0.0.1:8000 --in links_created.jsonl --count 15000 --concurrency 200
  python read_load.py --analytics --user shortlink_demo --password shortlink_demo
"""
import argparse
import asyncio
import json
import random
import time
from collections import Counter
from datetime import datetime, timezone

import httpx


def _now_iso():
    return datetime.now(timezone.utc).isoformat()


def _load_codes(path):
    codes = []
    with open(path, "r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            try:
                code = json.loads(line).get("code")
            except json.JSONDecodeError:
                continue
            if code:
                codes.append(code)
    return codes


async def _hit_one(client: httpx.AsyncClient, base: str, code: str, statuses: Counter) -> bool:
    try:
        r = await client.get(f"{base}/{code}", follow_redirects=False, timeout=10)
    except httpx.HTTPError as exc:
        statuses[type(exc).__name__] += 1
        return False
    statuses[r.status_code] += 1
    return r.status_code == 302


async def _report_analytics(client: httpx.AsyncClient, base: str, hits: Counter):
    for code, sent in hits.most_common(5):
        r = await client.get(f"{base}/analytics/{code}", timeout=30)
        if r.status_code != 200:
            print(f"ANALYTICS {code}: HTTP {r.status_code}")
            continue
        counted = sum(p["count"] for p in r.json())
        print(f"ANALYTICS {code}: sent={sent} counted={counted}")


async def main():
    parser = argparse.ArgumentParser()
    parser.add_argument("--base", default="http://127.0.0.1:8000")
    parser.add_argument("--in", dest="codes_file", default="links_created.jsonl")
    parser.add_argument("--count", type=int, default=15000)
    parser.add_argument("--concurrency", type=int, default=200)
    parser.add_argument("--analytics", action="store_true")
    parser.add_argument("--user")
    parser.add_argument("--password")
    args = parser.parse_args()

    codes = _load_codes(args.codes_file)
    if not codes:
        print(f"No codes found in {args.codes_file}. Run write_load.py first.")
        return

    auth = (args.user, args.password) if args.user else None
    statuses: Counter = Counter()
    hits: Counter = Counter()
    start_iso = _now_iso()
    t0 = time.perf_counter()

    limit = httpx.Limits(max_connections=args.concurrency, max_keepalive_connections=args.concurrency)
    async with httpx.AsyncClient(limits=limit, auth=auth) as client:
        sem = asyncio.Semaphore(args.concurrency)

        async def _task():
            code = random.choice(codes)
            async with sem:
                if await _hit_one(client, args.base, code, statuses):
                    hits[code] += 1

        await asyncio.gather(*(_task() for _ in range(args.count)))
        dt = time.perf_counter() - t0

        if args.analytics:
            await _report_analytics(client, args.base, hits)

    ok = statuses[302]
    print(f"START: {start_iso}")
    print(f"END:   {_now_iso()}")
    print(f"TOTAL: {dt:.3f} s")
    print(f"OPS:   reads={args.count}, ok={ok}, fail={args.count - ok}")
    print(f"CODES: {dict(statuses)}")
    if dt > 0:
        print(f"RPS:   {ok / dt:.1f} req/s")


if __name__ == "__main__":
    asyncio.run(main())
