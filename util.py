import re
import math
import asyncio
import logging
import subprocess
from typing import Optional, Tuple

from icmplib import async_ping, async_resolve, is_hostname, ICMPLibError

from model import PingStatsType

logger = logging.getLogger(__name__)

PING_BIN = "ping"
MAX_INTERVAL = 0.2
# share of the time left after name resolution handed to the echo requests
PING_HEADROOM = 0.9

# Linux: rtt min/avg/max/mdev = 0.026/0.026/0.026/0.000 ms
# BSD:   round-trip min/avg/max/stddev = 0.123/0.123/0.123/0.000 ms
RTT_RE = re.compile(r"=\s*([0-9.]+)/([0-9.]+)/([0-9.]+)")
LOSS_RE = re.compile(r"([0-9.]+)% packet loss")
REPLY_TIME_RE = re.compile(r"time[=<]([0-9.]+)\s*ms")


def is_ipv6(host: str) -> bool:
	return ":" in host


def address_family(host: str) -> int:
	return 6 if is_ipv6(host) else 4


def failed_stats(status: str, error: Optional[str] = None, packet_loss: Optional[float] = None) -> PingStatsType:
	return {
		"reachable": False,
		"status": status,
		"avg_latency_ms": None,
		"min_latency_ms": None,
		"max_latency_ms": None,
		"packet_loss": packet_loss,
		"error": error,
	}


def ping_budget(count: int, timeout: float) -> Tuple[float, float]:
	"""
	Split a total timeout into (interval, per-reply wait) so that
	(count - 1) * interval + count * wait never exceeds timeout.
	"""
	interval = min(MAX_INTERVAL, timeout / (2 * count))
	wait = (timeout - (count - 1) * interval) / count
	return interval, wait


async def _icmp_ping_within(address: str, count: int, timeout: float, family: int, privileged: bool):
	loop = asyncio.get_running_loop()
	deadline = loop.time() + timeout
	if is_hostname(address):
		address = (await async_resolve(address, family))[0]

	remaining = deadline - loop.time()
	if remaining <= 0:
		raise asyncio.TimeoutError()

	interval, wait = ping_budget(count, remaining * PING_HEADROOM)
	return await async_ping(
		address,
		count=count,
		interval=interval,
		timeout=wait,
		family=family,
		privileged=privileged,
	)


def icmp_ping(address: str, count: int, timeout: float, family: int, privileged: bool = False) -> PingStatsType:
	"""
	Ping through icmplib with timeout as a hard bound on the whole probe,
	name resolution included.
	"""
	loop = asyncio.new_event_loop()
	try:
		host = loop.run_until_complete(
			asyncio.wait_for(_icmp_ping_within(address, count, timeout, family, privileged), timeout)
		)
	except asyncio.TimeoutError:
		return failed_stats("timeout", f"no answer within {timeout}s")
	except (ICMPLibError, OSError) as e:
		logger.debug("icmplib ping %s failed: %s", address, e)
		return failed_stats("error", str(e) or e.__class__.__name__)
	finally:
		# a resolver thread still running is abandoned, not waited for
		loop.close()

	loss = round(host.packet_loss * 100, 1)
	if not host.is_alive:
		return failed_stats("unreachable", packet_loss=loss)

	return {
		"reachable": True,
		"status": "ok",
		"avg_latency_ms": host.avg_rtt,
		"min_latency_ms": host.min_rtt,
		"max_latency_ms": host.max_rtt,
		"packet_loss": loss,
		"error": None,
	}


def build_ping_args(address: str, count: int, timeout: float, family: int) -> list:
	# unprivileged iputils refuses intervals below 0.2s
	interval = MAX_INTERVAL
	wait = max((timeout * PING_HEADROOM - (count - 1) * interval) / count, 0.001)
	deadline = max(1, math.ceil(timeout))
	return [
		PING_BIN, f"-{family}",
		"-c", str(count),
		"-i", f"{interval:g}",
		"-W", f"{wait:.3f}",
		"-w", str(deadline),
		address,
	]


def parse_reply_times(output: str, count: int) -> Optional[PingStatsType]:
	"""Build stats from per-reply lines of a ping that never printed its summary."""
	times = [float(t) for t in REPLY_TIME_RE.findall(output)]
	if not times:
		return None

	return {
		"reachable": True,
		"status": "ok",
		"min_latency_ms": min(times),
		"avg_latency_ms": round(sum(times) / len(times), 3),
		"max_latency_ms": max(times),
		"packet_loss": round(max(0.0, 1 - len(times) / count) * 100, 1),
		"error": None,
	}


def parse_ping_output(output: str) -> PingStatsType:
	loss = None
	loss_match = LOSS_RE.search(output)
	if loss_match:
		loss = float(loss_match.group(1))

	rtt_match = RTT_RE.search(output)
	if rtt_match:
		return {
			"reachable": True,
			"status": "ok",
			"min_latency_ms": float(rtt_match.group(1)),
			"avg_latency_ms": float(rtt_match.group(2)),
			"max_latency_ms": float(rtt_match.group(3)),
			"packet_loss": loss,
			"error": None,
		}

	if loss is not None and loss >= 100:
		return failed_stats("unreachable", packet_loss=loss)

	return failed_stats("unparsed", output.strip().splitlines()[-1] if output.strip() else None, packet_loss=loss)


def system_ping(address: str, count: int, timeout: float, family: int) -> PingStatsType:
	args = build_ping_args(address, count, timeout, family)
	try:
		p = subprocess.run(
			args,
			stdout=subprocess.PIPE,
			stderr=subprocess.STDOUT,
			text=True,
			timeout=timeout,
			check=False,
		)
	except subprocess.TimeoutExpired as e:
		output = e.stdout or ""
		if isinstance(output, bytes):
			output = output.decode("utf-8", "replace")
		return parse_reply_times(output, count) or failed_stats("timeout", f"no reply summary within {timeout}s")
	except OSError as e:
		return failed_stats("error", str(e))

	return parse_ping_output(p.stdout or "")
