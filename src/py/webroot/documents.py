from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, NamedTuple

from .utils.htmpl import H, Node, escape, html
from .utils.io import DEFAULT_ENCODING
from .utils.logging import warning

if TYPE_CHECKING:
	from .config import ServerConfig

# Tokens replaced by the (escaped) requested URL in "not found" documents.
# The comment form keeps the document valid HTML when opened as a file.
REQUESTED_URL_TOKENS: tuple[str, ...] = ("{requestedURL}", "<!--${404URL}-->")

SERVER_NAME: str = "webroot"


class ErrorKind(Enum):
	NotFound = 404
	MethodNotAllowed = 405


def errorPage(status: int, title: str, *body: Node | str) -> str:
	return "".join(
		html(
			H.html(
				H.head(H.meta(charset="utf-8"), H.title(f"{status} {title}")),
				H.body(
					H.center(H.h1(f"{status} {title}")),
					*body,
					H.hr(),
					H.center(SERVER_NAME),
				),
			),
			doctype="html",
		)
	)


BUILTIN_DOCUMENTS: dict[ErrorKind, str] = {
	ErrorKind.NotFound: errorPage(
		404,
		"Not Found",
		H.center(H.p("The requested URL ", H.code("{requestedURL}"), " was not found.")),
	),
	ErrorKind.MethodNotAllowed: errorPage(405, "Method Not Allowed"),
}


def validateDocument(
	kind: ErrorKind, path: Path | str | None
) -> tuple[Path | None, str | None]:
	"""Checks that the configured document at `path` can be read, returning
	the path to use (`None` for the built-in document) and a warning message
	when the configured one had to be replaced."""
	if path is None:
		return None, None
	p: Path = Path(path).absolute()
	try:
		with open(p, "rb") as f:
			f.read(1)
	except OSError as e:
		message: str = f"Error document for {kind.value} is not readable, using built-in document"
		warning(message, Path=str(p), Reason=e.strerror or str(e))
		return None, f"{message}: {p}"
	return p, None


class ErrorDocuments(NamedTuple):
	"""Provides the documents for error responses. Configured documents are
	read on each request, a missing path means the built-in document."""

	notFoundPath: Path | None = None
	methodNotAllowedPath: Path | None = None
	encoding: str = DEFAULT_ENCODING

	@staticmethod
	def FromConfig(config: "ServerConfig") -> "ErrorDocuments":
		return ErrorDocuments(
			notFoundPath=config.notFoundDocumentPath,
			methodNotAllowedPath=config.methodNotAllowedDocumentPath,
		)

	def path(self, kind: ErrorKind) -> Path | None:
		match kind:
			case ErrorKind.NotFound:
				return self.notFoundPath
			case ErrorKind.MethodNotAllowed:
				return self.methodNotAllowedPath

	def load(self, kind: ErrorKind) -> str:
		"""Returns the document body for the given kind, raising `OSError`
		if a configured document can't be read."""
		path = self.path(kind)
		if path is None:
			return BUILTIN_DOCUMENTS[kind]
		with open(path, "rb") as f:
			return f.read().decode(self.encoding, errors="replace")

	def notFound(self, requestedURL: str) -> str:
		document: str = self.load(ErrorKind.NotFound)
		url: str = escape(requestedURL)
		for token in REQUESTED_URL_TOKENS:
			document = document.replace(token, url)
		return document

	def methodNotAllowed(self) -> str:
		return self.load(ErrorKind.MethodNotAllowed)


# EOF
