import os
import json
from typing import List, Optional, TextIO

import yaml

from model import ProbeResultType

FORMATS = ("table", "json", "yaml")


def sort_key(result: ProbeResultType):
	if result["reachable"] and result["avg_latency_ms"] is not None:
		return (0, result["avg_latency_ms"])

	return (1, 0.0)


def sort_results(results: List[ProbeResultType]) -> List[ProbeResultType]:
	# sorted() is stable, unreachable hosts keep their scan order
	return sorted(results, key=sort_key)


def format_latency(result: ProbeResultType) -> str:
	if not result["reachable"] or result["avg_latency_ms"] is None:
		return "unreachable"

	return f"{result['avg_latency_ms']:.2f} ms"


def format_loss(result: ProbeResultType) -> str:
	if result["packet_loss"] is None:
		return "-"

	return f"{result['packet_loss']:g}%"


def display_path(path: str, base: Optional[str] = None) -> str:
	if base is None:
		return os.path.basename(path)

	return os.path.relpath(path, base)


def render_table(results: List[ProbeResultType], base: Optional[str] = None) -> str:
	rows = [("FILE", "HOST", "STATUS", "LATENCY", "LOSS")]
	for r in results:
		rows.append((display_path(r["source_path"], base), r["host"], r["status"], format_latency(r), format_loss(r)))

	widths = [max(len(row[i]) for row in rows) for i in range(len(rows[0]))]
	lines = ["  ".join(cell.ljust(widths[i]) for i, cell in enumerate(row)).rstrip() for row in rows]

	up = sum(1 for r in results if r["reachable"])
	down = len(results) - up
	lines.append("")
	lines.append(f"{up} reachable, {down} unreachable out of {len(results)} host(s).")
	return "\n".join(lines) + "\n"


def dump_results(results: List[ProbeResultType], stream: TextIO, output_format: str = "table", base: Optional[str] = None):
	ordered = sort_results(results)
	if output_format == "json":
		json.dump(ordered, stream, indent=2)
		stream.write("\n")
	elif output_format == "yaml":
		yaml.dump(ordered, stream, sort_keys=False)
	else:
		stream.write(render_table(ordered, base))
