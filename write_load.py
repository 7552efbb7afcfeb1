"""
write_load.py: async load script that creates short links over HTTP

Posts random target URLs to POST /links and writes one JSON line per created
link ({"code", "targetUrl"}) so read_load.py can replay redirects against them.

Usage:
  python write_load.py --base http://127.0.0.1:8000 --count 2000 --concurrency 100 --out links_created.jsonl
  python write_load.py --user shortlink_demo --password shortlink_demo --ttl 3600
"""
import argparse
import asyncio
import json
import random
import string
import time
from collections import Counter
from datetime import datetime, timezone

import httpx


def _now_iso():
    return datetime.now(timezone.utc).isoformat()


def _rand_target(idx: int) -> str:
    host = random.choice(["example", "sample", "demo", "alpha", "beta"]) + "." + random.choice(["com", "org", "io"])
    path = "".join(random.choice(string.ascii_letters + string.digits) for _ in range(8))
    return f"https://{host}/{path}?q={idx}"


async def _create_one(client: httpx.AsyncClient, base: str, idx: int, ttl, statuses: Counter):
    payload = {"targetUrl": _rand_target(idx)}
    if ttl:
        payload["ttlSeconds"] = ttl
    try:
        r = await client.post(f"{base}/links", json=payload, timeout=10)
    except httpx.HTTPError as exc:
        statuses[type(exc).__name__] += 1
        return None
    statuses[r.status_code] += 1
    if r.status_code != 201:
        return None
    data = r.json()
    return {"code": data["code"], "targetUrl": data["targetUrl"]}


async def main():
    parser = argparse.ArgumentParser()
    parser.add_argument("--base", default="http://127.0.0.1:8000")
    parser.add_argument("--count", type=int, default=2000)
    parser.add_argument("--concurrency", type=int, default=100)
    parser.add_argument("--out", default="links_created.jsonl")
    parser.add_argument("--user")
    parser.add_argument("--password")
    parser.add_argument("--ttl", type=int, help="ttlSeconds for every created link")
    args = parser.parse_args()

    auth = (args.user, args.password) if args.user else None
    statuses: Counter = Counter()
    start_iso = _now_iso()
    t0 = time.perf_counter()

    limit = httpx.Limits(max_connections=args.concurrency, max_keepalive_connections=args.concurrency)
    with open(args.out, "w", encoding="utf-8") as out_f:
        async with httpx.AsyncClient(limits=limit, auth=auth) as client:
            sem = asyncio.Semaphore(args.concurrency)

            async def _task(i):
                async with sem:
                    row = await _create_one(client, args.base, i, args.ttl, statuses)
                if row:
                    out_f.write(json.dumps(row) + "\n")

            await asyncio.gather(*(_task(i) for i in range(args.count)))

    dt = time.perf_counter() - t0
    ok = statuses[201]
    print(f"START: {start_iso}")
    print(f"END:   {_now_iso()}")
    print(f"TOTAL: {dt:.3f} s")
    print(f"OPS:   writes={args.count}, ok={ok}, fail={args.count - ok}")
    print(f"CODES: {dict(statuses)}")
    if dt > 0:
        print(f"TPS:   {ok / dt:.1f} req/s")


if __name__ == "__main__":
    asyncio.run(main())
