import os
import sys
import json
import logging
import argparse
from typing import List, Optional, TextIO

import report
import scheduler
import wgconf
from errors import WgPingError, UsageError, InputError, NoEndpointsError
from model import ConfigType, EndpointType, ProbeResultType
from prober import BACKENDS, Prober, make_prober

__version__ = "0.1.0"

LOG_LEVEL_ENV_VAR = "WG_PING_LOG_LEVEL"

DEFAULT_CONFIG: ConfigType = {
    "count": 4,
    "timeout": 5.0,
    "concurrency": 20,
    "backend": "icmplib",
    "privileged": False,
    "recursive": True,
    "format": "table",
}

logger = logging.getLogger(__name__)


def load_config(path: Optional[str] = None) -> ConfigType:
    conf: ConfigType = dict(DEFAULT_CONFIG)
    if path is None:
        return conf

    try:
        with open(path) as f:
            data = json.loads(f.read())
    except (OSError, ValueError) as e:
        raise UsageError(f"cannot read config {path}: {e}")

    if not isinstance(data, dict):
        raise UsageError(f"config {path} must hold a JSON object")

    unknown = set(data) - set(DEFAULT_CONFIG)
    if unknown:
        raise UsageError(f"unknown config keys in {path}: {', '.join(sorted(unknown))}")

    conf.update(data)
    return conf


def validate_config(conf: ConfigType) -> ConfigType:
    try:
        conf["count"] = int(conf["count"])
        conf["timeout"] = float(conf["timeout"])
        conf["concurrency"] = int(conf["concurrency"])
    except (TypeError, ValueError) as e:
        raise UsageError(f"invalid numeric setting: {e}")

    if conf["count"] < 1:
        raise UsageError("count must be at least 1")
    if conf["timeout"] <= 0:
        raise UsageError("timeout must be positive")
    if conf["concurrency"] < 1:
        raise UsageError("concurrency must be at least 1")
    if conf["backend"] not in BACKENDS:
        raise UsageError(f"unknown backend {conf['backend']!r}")
    if conf["format"] not in report.FORMATS:
        raise UsageError(f"unknown output format {conf['format']!r}")
    for key in ("privileged", "recursive"):
        if not isinstance(conf[key], bool):
            raise UsageError(f"{key} must be true or false, not {conf[key]!r}")

    return conf


class WireGuardEndpointPinger:
    def __init__(self, folder: str, config: ConfigType, prober: Optional[Prober] = None):
        self.folder = folder
        self.config = config
        self.prober = prober or make_prober(config["backend"], config["privileged"])
        self.endpoints: List[EndpointType] = []
        self.results: List[ProbeResultType] = []

    def scan(self) -> List[EndpointType]:
        if not os.path.isdir(self.folder):
            raise InputError(f"folder '{self.folder}' not found or is not a directory")

        files = wgconf.find_config_files(self.folder, self.config["recursive"])
        if not files:
            raise InputError(f"no .conf files found in '{self.folder}'")

        logger.info("scanning %d config file(s) in %s", len(files), self.folder)
        self.endpoints = wgconf.scan_endpoints(files)
        if not self.endpoints:
            raise NoEndpointsError(f"no endpoints found in [Peer] sections under '{self.folder}'")

        return self.endpoints

    def probe_all(self) -> List[ProbeResultType]:
        self.results = scheduler.probe_all(
            self.endpoints,
            self.prober,
            count=self.config["count"],
            timeout=self.config["timeout"],
            concurrency=self.config["concurrency"],
        )
        return self.results

    def dump_report(self, stream: TextIO):
        report.dump_results(self.results, stream, self.config["format"], base=self.folder)


class UsageParser(argparse.ArgumentParser):
    def error(self, message):
        self.print_usage(sys.stderr)
        self.exit(UsageError.exit_code, f"{self.prog}: error: {message}\n")


def build_parser() -> argparse.ArgumentParser:
    parser = UsageParser(
        prog="wg-ping",
        description="Ping the peer endpoints of a folder of WireGuard configs, fastest first.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Exit codes:\n"
            "  0  success\n"
            "  1  missing or invalid arguments\n"
            "  2  folder not found or holds no .conf files\n"
            "  3  no endpoints extracted\n\n"
            "Environment overrides:\n"
            f"  {LOG_LEVEL_ENV_VAR}  Default logging level when --log-level is omitted."
        ),
    )
    parser.add_argument("folder", nargs="?", help="Folder holding WireGuard .conf files")
    parser.add_argument("-d", "--dir", dest="dir", help="Folder holding WireGuard .conf files")
    parser.add_argument("-c", "--count", type=int, help=f"Echo requests per host (default {DEFAULT_CONFIG['count']})")
    parser.add_argument(
        "-t", "--timeout", type=float,
        help=f"Upper bound in seconds for each host's whole probe (default {DEFAULT_CONFIG['timeout']:g})",
    )
    parser.add_argument(
        "-P", "--concurrency", type=int,
        help=f"Maximum probes in flight (default {DEFAULT_CONFIG['concurrency']})",
    )
    parser.add_argument("--backend", choices=sorted(BACKENDS), help="Ping implementation (default icmplib)")
    parser.add_argument(
        "--privileged", action="store_true", default=None,
        help="Use raw ICMP sockets with the icmplib backend (needs root)",
    )
    parser.add_argument(
        "--no-recursive", dest="recursive", action="store_false", default=None,
        help="Only read .conf files directly inside the folder",
    )
    parser.add_argument("--format", choices=report.FORMATS, help="Report format (default table)")
    parser.add_argument("--config", help="JSON file with default settings")
    parser.add_argument("--log-level", help="DEBUG, INFO, WARNING, ERROR or numeric")
    parser.add_argument("--version", action="version", version=f"wg-ping {__version__}")
    return parser


def _resolve_log_level(candidate: Optional[str]) -> int:
    for value in (candidate, os.getenv(LOG_LEVEL_ENV_VAR)):
        if not value or not value.strip():
            continue

        stripped = value.strip()
        if stripped.isdigit():
            return int(stripped)

        level = logging.getLevelName(stripped.upper())
        if isinstance(level, int):
            return level

    return logging.WARNING


def _configure_logging(level_name: Optional[str]):
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
    logging.basicConfig(level=_resolve_log_level(level_name), handlers=[handler], force=True)


def config_from_args(args: argparse.Namespace) -> ConfigType:
    conf = load_config(args.config)
    for key in ("count", "timeout", "concurrency", "backend", "privileged", "recursive", "format"):
        value = getattr(args, key)
        if value is not None:
            conf[key] = value

    return validate_config(conf)


def main(argv: Optional[List[str]] = None, prober: Optional[Prober] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.log_level)

    folder = args.dir or args.folder
    if args.dir and args.folder and args.dir != args.folder:
        parser.error("give the folder either positionally or with -d, not both")
    if not folder:
        parser.error("a folder of WireGuard configs is required")

    try:
        conf = config_from_args(args)
    except UsageError as e:
        parser.print_usage(sys.stderr)
        print(f"error: {e}", file=sys.stderr)
        return e.exit_code

    try:
        pinger = WireGuardEndpointPinger(folder, conf, prober=prober)
        pinger.scan()
        pinger.probe_all()
    except WgPingError as e:
        print(f"error: {e}", file=sys.stderr)
        return e.exit_code

    pinger.dump_report(sys.stdout)
    return 0


if __name__ == "__main__":
    sys.exit(main())
