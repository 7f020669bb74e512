import os
import re
import logging
from typing import Iterator, List, Optional

from model import EndpointType

logger = logging.getLogger(__name__)

SECTION_RE = re.compile(r"^\s*\[\s*([^\]]*?)\s*\]\s*(#.*)?$")
ENDPOINT_RE = re.compile(r"^\s*endpoint\s*=(.*)$", re.IGNORECASE)
BRACKETED_IPV6_RE = re.compile(r"^\[([^\[\]]+)\]:(\d+)$")


def find_config_files(folder: str, recursive: bool = True) -> List[str]:
	if not recursive:
		files = [os.path.join(folder, f) for f in os.listdir(folder)]
		return sorted(f for f in files if f.endswith(".conf") and os.path.isfile(f))

	files = []
	for root, dirs, names in os.walk(folder):
		dirs.sort()
		for name in names:
			path = os.path.join(root, name)
			if name.endswith(".conf") and os.path.isfile(path):
				files.append(path)

	return sorted(files)


def read_endpoint_values(text: str) -> Iterator[str]:
	"""Yield the raw value of every Endpoint line inside a [Peer] section."""
	in_peer = False
	for line in text.splitlines():
		line = line.replace("\r", "")
		section = SECTION_RE.match(line)
		if section:
			in_peer = section.group(1).lower() == "peer"
			continue

		if not in_peer:
			continue

		match = ENDPOINT_RE.match(line)
		if match:
			yield match.group(1).split("#", 1)[0].strip()


def extract_host(value: str) -> Optional[str]:
	"""
	Strip the port from an endpoint value.

	Returns None when the value is empty or still holds a colon after the
	port is removed (unbracketed IPv6, "host:port:extra" and the like).
	"""
	value = value.split("#", 1)[0].strip()
	bracketed = BRACKETED_IPV6_RE.match(value)
	if bracketed:
		return bracketed.group(1)

	host = value.rsplit(":", 1)[0] if ":" in value else value
	host = host.strip()
	if not host or ":" in host:
		return None

	return host


def read_endpoints(path: str) -> List[EndpointType]:
	try:
		with open(path, encoding="utf-8") as f:
			text = f.read()
	except (OSError, UnicodeDecodeError) as e:
		logger.warning("skipping %s: %s", path, e)
		return []

	endpoints: List[EndpointType] = []
	for value in read_endpoint_values(text):
		host = extract_host(value)
		if host is None:
			logger.warning("skipping malformed endpoint %r in %s", value, path)
			continue

		endpoints.append({"host": host, "source_path": path})

	if not endpoints:
		logger.info("no Endpoint found in [Peer] section of %s", path)

	return endpoints


def scan_endpoints(paths: List[str]) -> List[EndpointType]:
	endpoints: List[EndpointType] = []
	for path in paths:
		endpoints.extend(read_endpoints(path))

	return endpoints
