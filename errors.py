class WgPingError(Exception):
	exit_code = 1


class UsageError(WgPingError):
	"""Bad or missing command line input."""
	exit_code = 1


class InputError(WgPingError):
	"""The config directory is missing or holds no .conf files."""
	exit_code = 2


class NoEndpointsError(InputError):
	exit_code = 3
