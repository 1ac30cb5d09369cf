from aiohttp import web
import json
import asyncio

RELAY_KEY = web.AppKey("relay")


def _snapshot(relay):
    snap = relay.metrics.snapshot()
    snap["clients"] = len(relay.clients)
    snap["topics"] = len(relay.topics)
    return snap


async def stats(request):
    return web.json_response(_snapshot(request.app[RELAY_KEY]))


async def metrics_prom(request):
    snap = _snapshot(request.app[RELAY_KEY])
    lines = []
    lines.append(f"relay_uptime_sec {snap['uptime_sec']}")
    lines.append(f"relay_clients {snap['clients']}")
    lines.append(f"relay_topics {snap['topics']}")
    for name in (
        "datagrams_in_total",
        "decode_errors_total",
        "subscribes_total",
        "unsubscribes_total",
        "publishes_total",
        "deliveries_total",
        "send_failures_total",
        "idle_evictions_total",
        "failure_evictions_total",
        "bytes_in_total",
        "bytes_out_total",
    ):
        lines.append(f"relay_{name} {snap[name]}")
    for k, v in snap["packet_count"].items():
        lines.append(f'relay_packet_count{{type="{k}"}} {v}')
    for k, v in snap["packet_avg_ms"].items():
        lines.append(f'relay_packet_avg_ms{{type="{k}"}} {v}')
    for k, v in snap["packet_max_ms"].items():
        lines.append(f'relay_packet_max_ms{{type="{k}"}} {v}')
    return web.Response(text="\n".join(lines) + "\n", content_type="text/plain")


# ---------------- Live stats (SSE) ----------------
async def events(request):
    """
    Server-Sent Events endpoint.
    Pushes the /stats snapshot every second until the client goes away.
    """
    resp = web.StreamResponse(
        status=200,
        reason="OK",
        headers={
            "Content-Type": "text/event-stream",
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "Access-Control-Allow-Origin": "*",
        },
    )
    await resp.prepare(request)

    try:
        while True:
            data = json.dumps(_snapshot(request.app[RELAY_KEY]))
            await resp.write(f"data: {data}\n\n".encode("utf-8"))
            await asyncio.sleep(1)

    except (ConnectionResetError, BrokenPipeError):
        # Client disconnected
        pass

    return resp


def make_app(relay):
    app = web.Application()
    app[RELAY_KEY] = relay

    app.router.add_get("/stats", stats)
    app.router.add_get("/metrics", metrics_prom)
    app.router.add_get("/events", events)

    return app
