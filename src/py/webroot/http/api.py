from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Generic, TypeVar

from ..utils.files import contentType as getContentType

T = TypeVar("T")

# -----------------------------------------------------------------------------
#
# API
#
# -----------------------------------------------------------------------------

# --
# == HTTP Request Response API
#
# Defines the high level API functions (orthogonal to the underlying model)
# to create responses.


class ResponseFactory(ABC, Generic[T]):
	@abstractmethod
	def respond(
		self,
		content: Any = None,
		contentType: str | None = None,
		contentLength: int | None = None,
		status: int = 200,
		headers: dict[str, str] | None = None,
		message: str | None = None,
	) -> T: ...

	def redirect(
		self, url: str, permanent: bool = False, contentType: str = "text/plain"
	) -> T:
		# SEE: https://developer.mozilla.org/en-US/docs/Web/HTTP/Redirections
		return self.respond(
			content=None,
			contentType=contentType,
			status=301 if permanent else 302,
			headers={"Location": str(url)},
		)

	def respondHTML(
		self,
		html: str | bytes,
		status: int = 200,
		*,
		contentType: str = "text/html",
		headers: dict[str, str] | None = None,
	) -> T:
		return self.respond(
			content=html, contentType=contentType, status=status, headers=headers
		)

	def respondFile(
		self,
		path: Path | str,
		headers: dict[str, str] | None = None,
		status: int = 200,
		contentType: str | None = None,
		contentLength: int | None = None,
	) -> T:
		p: Path = path if isinstance(path, Path) else Path(path)
		return self.respond(
			content=p,
			contentType=contentType or getContentType(p),
			contentLength=p.stat().st_size if contentLength is None else contentLength,
			status=status,
			headers=headers,
		)


# EOF
