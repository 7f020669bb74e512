from typing import TypedDict, Optional


class EndpointType(TypedDict):
	host: str
	source_path: str


class PingStatsType(TypedDict):
	reachable: bool
	status: str
	avg_latency_ms: Optional[float]
	min_latency_ms: Optional[float]
	max_latency_ms: Optional[float]
	packet_loss: Optional[float]
	error: Optional[str]


class ProbeResultType(TypedDict):
	host: str
	source_path: str
	reachable: bool
	status: str
	avg_latency_ms: Optional[float]
	min_latency_ms: Optional[float]
	max_latency_ms: Optional[float]
	packet_loss: Optional[float]
	error: Optional[str]


class ConfigType(TypedDict):
	count: int
	timeout: float
	concurrency: int
	backend: str
	privileged: bool
	recursive: bool
	format: str
