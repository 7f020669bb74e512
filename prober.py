from abc import ABC, abstractmethod

import util
from model import PingStatsType


class Prober(ABC):
	@abstractmethod
	def probe(self, host: str, count: int, timeout: float, family: int) -> PingStatsType:
		"""Send count echo requests to host, taking at most timeout seconds in total."""
		raise NotImplementedError


class IcmpProber(Prober):
	"""Pings through icmplib sockets, no child process involved."""

	def __init__(self, privileged: bool = False):
		self.privileged = privileged

	def probe(self, host: str, count: int, timeout: float, family: int) -> PingStatsType:
		return util.icmp_ping(host, count, timeout, family, privileged=self.privileged)


class SystemPingProber(Prober):
	"""Shells out to the ping binary and parses its summary lines."""

	def probe(self, host: str, count: int, timeout: float, family: int) -> PingStatsType:
		return util.system_ping(host, count, timeout, family)


BACKENDS = {
	"icmplib": IcmpProber,
	"system": SystemPingProber,
}


def make_prober(backend: str, privileged: bool = False) -> Prober:
	if backend == "icmplib":
		return IcmpProber(privileged=privileged)

	return BACKENDS[backend]()
