import os
from os import getenv
from pathlib import Path
from typing import Any, Mapping, NamedTuple

from .documents import ErrorKind, validateDocument
from .errors import ConfigurationError
from .paths import normalize

PORT: int = int(getenv("PORT", 8000))

# When started in a development environment, we want the server to be
# accessible from everywhere.
HOST: str = getenv("HOST", "0.0.0.0")  # nosec: B104

DIRECTORY: str = getenv("WEBROOT_DIRECTORY", "./public")

LOG_REQUESTS: bool = getenv("WEBROOT_LOG_REQUESTS", "1") == "1"

# -----------------------------------------------------------------------------
#
# SERVER CONFIG
#
# -----------------------------------------------------------------------------


class ServerConfig(NamedTuple):
	"""The validated, immutable configuration of a server. Use `configure()`
	to build one from raw options."""

	rootDirectory: Path
	rootFile: str = "/index.html"
	acceptOnlyGet: bool = True
	useIndexHtml: bool = True
	serveIndexEnabled: bool = False
	# `None` means the built-in document is used
	notFoundDocumentPath: Path | None = None
	methodNotAllowedDocumentPath: Path | None = None


# Option aliases, mapping the lowercase option names to the config fields.
OPTIONS: dict[str, str] = {
	"directory": "rootDirectory",
	"dir": "rootDirectory",
	"rootfile": "rootFile",
	"acceptonlyget": "acceptOnlyGet",
	"useindexhtml": "useIndexHtml",
	"serveindex": "serveIndexEnabled",
} | {_.lower(): _ for _ in ServerConfig._fields}


def normalizeDirectory(directory: str | Path) -> Path:
	"""Returns the absolute version of the given directory, relative paths
	being resolved against the current directory."""
	text: str = str(directory)
	if len(text) > 1 and text.endswith("/"):
		text = text.rstrip("/") or "/"
	return Path(os.path.abspath(text or "."))


def normalizeRootFile(rootFile: str | None) -> str:
	"""The root file is a local path relative to the root directory, so it
	is resolved lexically but never percent-decoded."""
	if not rootFile:
		return "/index.html"
	return normalize(rootFile if rootFile.startswith("/") else f"/{rootFile}")


def asFlag(name: str, value: Any) -> bool:
	if isinstance(value, bool):
		return value
	elif isinstance(value, str) and value.lower() in ("1", "true", "yes", "on"):
		return True
	elif isinstance(value, str) and value.lower() in ("0", "false", "no", "off", ""):
		return False
	elif isinstance(value, int):
		return bool(value)
	else:
		raise ConfigurationError(f"Option {name} expects a boolean, got: {value!r}", name)


def checkRoot(root: Path) -> Path:
	"""Ensures that the root directory exists and can be read."""
	if not root.exists():
		raise ConfigurationError(
			f'Please create directory "{root}" first.', "rootDirectory"
		)
	elif not root.is_dir():
		raise ConfigurationError(f'Path "{root}" is not a directory.', "rootDirectory")
	try:
		with os.scandir(root):
			pass
	except OSError as e:
		raise ConfigurationError(
			f'Directory "{root}" is not readable: {e.strerror or e}', "rootDirectory"
		) from e
	return root


def configure(
	options: Mapping[str, Any] | None = None,
) -> tuple[ServerConfig, list[str]]:
	"""Builds a `ServerConfig` out of raw options, returning it along with
	the list of warnings produced while validating. Options not given take
	their default values, and unknown options raise a `ConfigurationError`."""
	values: dict[str, Any] = {}
	documents: dict[ErrorKind, Any] = {}
	for key, value in (options or {}).items():
		if key.lower() == "errordocument":
			if not isinstance(value, Mapping):
				raise ConfigurationError(
					"Option errordocument expects a mapping like {'_404': path}",
					"errordocument",
				)
			for k, v in value.items():
				kind = {"_404": ErrorKind.NotFound, "_405": ErrorKind.MethodNotAllowed}.get(k)
				if kind is None:
					raise ConfigurationError(f"Unknown error document: {k}", "errordocument")
				documents[kind] = v
		elif key.lower() == "port":
			# The port belongs to the transport, not to the resolution
			continue
		elif (field := OPTIONS.get(key.lower())) is None:
			raise ConfigurationError(f"Unknown option: {key}", key)
		elif value is not None:
			values[field] = value
	if "notFoundDocumentPath" in values:
		documents.setdefault(ErrorKind.NotFound, values["notFoundDocumentPath"])
	if "methodNotAllowedDocumentPath" in values:
		documents.setdefault(
			ErrorKind.MethodNotAllowed, values["methodNotAllowedDocumentPath"]
		)
	root: Path = checkRoot(normalizeDirectory(values.get("rootDirectory", DIRECTORY)))
	# The error documents are validated once, a document that can't be
	# read now is replaced by the built-in one for the config's lifetime.
	warnings: list[str] = []
	paths: dict[ErrorKind, Path | None] = {}
	for kind in ErrorKind:
		path, message = validateDocument(kind, documents.get(kind) or None)
		paths[kind] = path
		if message:
			warnings.append(message)
	config = ServerConfig(
		rootDirectory=root,
		rootFile=normalizeRootFile(values.get("rootFile")),
		acceptOnlyGet=asFlag("acceptOnlyGet", values.get("acceptOnlyGet", True)),
		useIndexHtml=asFlag("useIndexHtml", values.get("useIndexHtml", True)),
		serveIndexEnabled=asFlag(
			"serveIndexEnabled", values.get("serveIndexEnabled", False)
		),
		notFoundDocumentPath=paths[ErrorKind.NotFound],
		methodNotAllowedDocumentPath=paths[ErrorKind.MethodNotAllowed],
	)
	return config, warnings


# EOF
