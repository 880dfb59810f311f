# -----------------------------------------------------------------------------
#
# ERRORS
#
# -----------------------------------------------------------------------------
# Request outcomes like "not found" are not errors, they are `Outcome` values
# produced by the resolver. Filesystem faults are plain `OSError`s that the
# resolver recovers from where they happen.


class InvalidInput(ValueError):
	"""Raised when a path is not a string-like value, or can't be decoded."""

	def __init__(self, message: str, value: object = None):
		super().__init__(message)
		self.message: str = message
		self.value: object = value


class ConfigurationError(Exception):
	"""Raised when the server can't be configured, typically because the
	root directory does not exist or can't be read."""

	def __init__(self, message: str, option: str | None = None):
		super().__init__(message)
		self.message: str = message
		self.option: str | None = option


# EOF
