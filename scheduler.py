import logging
from threading import Thread, BoundedSemaphore
from typing import List, Optional

import util
from model import EndpointType, ProbeResultType
from prober import Prober

logger = logging.getLogger(__name__)


def dedupe_endpoints(endpoints: List[EndpointType]) -> List[EndpointType]:
	seen = set()
	unique: List[EndpointType] = []
	for endpoint in endpoints:
		if endpoint["host"] in seen:
			logger.debug("%s already seen, ignoring copy in %s", endpoint["host"], endpoint["source_path"])
			continue

		seen.add(endpoint["host"])
		unique.append(endpoint)

	return unique


def probe_endpoint(prober: Prober, endpoint: EndpointType, count: int, timeout: float) -> ProbeResultType:
	host = endpoint["host"]
	try:
		stats = prober.probe(host, count, timeout, util.address_family(host))
	except Exception as e:
		logger.warning("probe of %s failed: %s", host, e)
		stats = util.failed_stats("error", str(e))

	if not stats["reachable"]:
		logger.debug("%s is %s", host, stats["status"])

	return {
		"host": host,
		"source_path": endpoint["source_path"],
		**stats,
	}


def probe_all(
	endpoints: List[EndpointType],
	prober: Prober,
	count: int,
	timeout: float,
	concurrency: int,
) -> List[ProbeResultType]:
	"""
	Probe every unique host with at most `concurrency` probes in flight.

	Probes are launched in first-seen order. Each worker thread writes only its
	own slot in the result list, so results come back in launch order whatever
	order the probes finish in.
	"""
	unique = dedupe_endpoints(endpoints)
	results: List[Optional[ProbeResultType]] = [None] * len(unique)
	slots = BoundedSemaphore(concurrency)
	threads = []

	def probe_and_report(index, endpoint):
		try:
			results[index] = probe_endpoint(prober, endpoint, count, timeout)
		finally:
			slots.release()

	for index, endpoint in enumerate(unique):
		slots.acquire()
		t = Thread(target=probe_and_report, args=[index, endpoint], name=f"probe-{endpoint['host']}")
		threads.append(t)
		t.start()

	for t in threads:
		t.join()

	return results
