import errno
import os
import stat
import time
from enum import Enum
from pathlib import Path
from typing import Callable, NamedTuple, TypeAlias

from .config import ServerConfig
from .documents import ErrorDocuments
from .errors import InvalidInput
from .http.api import ResponseFactory
from .http.model import HTTPRequest, HTTPResponse, HTTPResponses
from .listing import renderListing
from .paths import confine, sanitize, urlpath
from .utils.files import contentType
from .utils.logging import LogLevel, debug, exception, logged, warning

# -----------------------------------------------------------------------------
#
# OUTCOMES
#
# -----------------------------------------------------------------------------

INTERNAL_ERROR_BODY: str = "<center><h1>Internal Server Error</h1></center>"

LISTING_CONTENT_TYPE: str = "text/html; charset=utf-8"

# Errors that mean the candidate names nothing, so that resolution moves on
# to the fallback instead of failing.
MISSING_ERRNOS: frozenset[int] = frozenset(
	(errno.ENOENT, errno.ENOTDIR, errno.EISDIR, errno.ENAMETOOLONG, errno.ELOOP)
)


class Outcome(Enum):
	FileServed = "file"
	MethodNotAllowed = "method-not-allowed"
	RedirectToTrailingSlash = "redirect"
	NotFound = "not-found"
	ListingServed = "listing"
	InternalFault = "internal-fault"


class Resolved(NamedTuple):
	"""A terminal state of the resolution, with the response it produced."""

	outcome: Outcome
	response: HTTPResponse


class RequestLog(NamedTuple):
	"""What observers are told about each resolved request. `time` is the
	timestamp at which resolution started, `duration` is in seconds."""

	method: str
	path: str
	status: int
	outcome: Outcome
	time: float
	duration: float = 0.0


RequestObserver: TypeAlias = Callable[[RequestLog], None]


# -----------------------------------------------------------------------------
#
# RESOLVER
#
# -----------------------------------------------------------------------------


class RequestResolver:
	"""Turns a method and a raw path into exactly one response, going
	through the following states in order:

	- method check, where non-GET requests are refused when `acceptOnlyGet`;
	- path resolution, mapping the sanitized path to a candidate file;
	- file attempt, serving the candidate if it's a regular file;
	- fallback, which redirects directories to their trailing-slash URL,
	  renders listings or gives a "not found".

	Any unexpected failure results in an internal fault, `resolve` never
	raises."""

	__slots__ = ["config", "documents", "observer"]

	def __init__(
		self,
		config: ServerConfig,
		documents: ErrorDocuments | None = None,
		observer: RequestObserver | None = None,
	):
		self.config: ServerConfig = config
		self.documents: ErrorDocuments = documents or ErrorDocuments.FromConfig(
			config
		)
		self.observer: RequestObserver | None = observer

	@property
	def root(self) -> Path:
		return self.config.rootDirectory

	def process(self, request: HTTPRequest) -> HTTPResponse:
		"""Resolves the request, which is also used to create the response."""
		return self.resolve(request.method, request.path, factory=request)

	def resolve(
		self,
		method: str,
		rawPath: str | bytes,
		*,
		factory: ResponseFactory[HTTPResponse] | None = None,
	) -> HTTPResponse:
		responses: ResponseFactory[HTTPResponse] = factory or HTTPResponses()
		started: float = time.time()
		try:
			resolved = self.dispatch(method, rawPath, responses)
		except Exception as e:
			resolved = self.internalFault(responses, e)
		self.notify(
			RequestLog(
				method=method,
				path=self.displayPath(rawPath),
				status=resolved.response.status,
				outcome=resolved.outcome,
				time=started,
				duration=time.time() - started,
			)
		)
		return resolved.response

	def dispatch(
		self,
		method: str,
		rawPath: str | bytes,
		factory: ResponseFactory[HTTPResponse],
	) -> Resolved:
		if refused := self.onMethodCheck(method, factory):
			return refused
		try:
			path, candidate = self.resolvePath(rawPath)
		except InvalidInput as e:
			logged(LogLevel.Debug) and debug(
				"Invalid request path", Path=self.displayPath(rawPath), Reason=e.message
			)
			return self.notFound(self.displayPath(rawPath), factory)
		return self.onFileAttempt(candidate, factory) or self.onFallback(
			path, factory
		)

	# --
	# ## States

	def onMethodCheck(
		self, method: str, factory: ResponseFactory[HTTPResponse]
	) -> Resolved | None:
		if not self.config.acceptOnlyGet or method.upper() == "GET":
			return None
		try:
			body: str = self.documents.methodNotAllowed()
		except OSError as e:
			return self.internalFault(factory, e)
		return Resolved(
			Outcome.MethodNotAllowed,
			factory.respondHTML(body, 405, headers={"Allow": "GET"}),
		)

	def resolvePath(self, rawPath: str | bytes) -> tuple[str, Path]:
		"""Returns the sanitized path and the candidate file for it, raising
		`InvalidInput` when the path can't be decoded."""
		path: str = sanitize(rawPath)
		if path == "/":
			return path, confine(self.root, self.config.rootFile)
		elif path.endswith("/") and self.config.useIndexHtml:
			return path, confine(self.root, f"{path}index.html")
		else:
			return path, confine(self.root, path)

	def onFileAttempt(
		self, candidate: Path, factory: ResponseFactory[HTTPResponse]
	) -> Resolved | None:
		try:
			stats = os.stat(candidate)
			if not stat.S_ISREG(stats.st_mode):
				return None
			# We make sure the file can actually be read before committing
			# to a 200 response.
			with open(candidate, "rb"):
				pass
		except OSError as e:
			if e.errno in MISSING_ERRNOS:
				return None
			return self.internalFault(factory, e)
		return Resolved(
			Outcome.FileServed,
			factory.respondFile(
				candidate,
				contentType=contentType(candidate),
				contentLength=stats.st_size,
			),
		)

	def onFallback(
		self, path: str, factory: ResponseFactory[HTTPResponse]
	) -> Resolved:
		directory: Path = confine(self.root, path)
		if not os.path.isdir(directory):
			return self.notFound(path, factory)
		elif not path.endswith("/"):
			return Resolved(
				Outcome.RedirectToTrailingSlash,
				factory.redirect(urlpath(f"{path}/")),
			)
		elif not self.config.serveIndexEnabled:
			return self.notFound(path, factory)
		try:
			listing: str = renderListing(directory, path, root=self.root)
		except OSError as e:
			warning(
				"Could not list directory",
				Path=path,
				Reason=e.strerror or str(e),
			)
			return self.notFound(path, factory)
		return Resolved(
			Outcome.ListingServed,
			factory.respondHTML(
				listing,
				contentType=LISTING_CONTENT_TYPE,
				headers={"X-Content-Type-Options": "nosniff"},
			),
		)

	def notFound(
		self, requestedURL: str, factory: ResponseFactory[HTTPResponse]
	) -> Resolved:
		try:
			body: str = self.documents.notFound(requestedURL)
		except OSError as e:
			return self.internalFault(factory, e)
		return Resolved(Outcome.NotFound, factory.respondHTML(body, 404))

	def internalFault(
		self,
		factory: ResponseFactory[HTTPResponse],
		error: BaseException | None = None,
	) -> Resolved:
		if error:
			exception(error, "Could not resolve request")
		return Resolved(
			Outcome.InternalFault, factory.respondHTML(INTERNAL_ERROR_BODY, 500)
		)

	# --
	# ## Observers

	def notify(self, log: RequestLog) -> None:
		if not self.observer:
			return
		try:
			self.observer(log)
		except Exception as e:
			exception(e, "Request observer failed")

	@staticmethod
	def displayPath(rawPath: str | bytes) -> str:
		if isinstance(rawPath, bytes):
			return rawPath.decode("utf8", errors="replace")
		return rawPath if isinstance(rawPath, str) else repr(rawPath)


# EOF
