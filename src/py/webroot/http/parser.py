from typing import ClassVar, Iterator, Literal

from ..utils.io import LineParser
from .model import (
	HTTPAtom,
	HTTPBodyBlob,
	HTTPHeaders,
	HTTPProcessingStatus,
	HTTPRequest,
	HTTPRequestLine,
	headername,
)

# -----------------------------------------------------------------------------
#
# PARSERS
#
# -----------------------------------------------------------------------------

# --
# Requests are parsed incrementally: each parser is fed chunks starting at a
# given offset and tells how much it consumed, so that pipelined requests in
# the same chunk are picked up by the next parser.


class RequestLineParser:
	"""Parses an HTTP request line, skipping TLS handshakes sent by browsers
	that try HTTPS first."""

	__slots__ = ["line", "value", "skipping"]

	def __init__(self) -> None:
		self.line: LineParser = LineParser()
		self.value: HTTPRequestLine | None = None
		self.skipping: int = 0

	def flush(self) -> HTTPRequestLine | None:
		res = self.value
		self.reset()
		return res

	def reset(self) -> "RequestLineParser":
		self.line.reset()
		self.value = None
		self.skipping = 0
		return self

	def feed(self, chunk: bytes, start: int = 0) -> tuple[bool | None, int]:
		"""Returns `True` when a request line was parsed, `False` when the
		line is malformed and `None` when more data is needed."""
		available = len(chunk) - start
		if self.skipping:
			read = min(available, self.skipping)
			self.skipping -= read
			return None, read
		elif available >= 5 and chunk[start] == 0x16:
			# The TLS record length is in bytes 3 and 4 of its header
			size = 5 + (chunk[start + 3] << 8) + chunk[start + 4]
			if available >= size:
				return None, size
			else:
				self.skipping = size - available
				return None, available
		line, read = self.line.feed(chunk, start)
		if not line:
			# Empty lines before a request line are ignored
			return None, read
		try:
			ln = line.decode("ascii")
		except UnicodeDecodeError:
			return False, read
		# METHOD PATH[?QUERY] PROTOCOL
		i = ln.find(" ")
		j = ln.rfind(" ")
		if i <= 0 or i == j or not ln[j + 1 :].startswith("HTTP/"):
			return False, read
		p: list[str] = ln[i + 1 : j].split("?", 1)
		self.value = HTTPRequestLine(
			ln[0:i], p[0], p[1] if len(p) > 1 else "", ln[j + 1 :]
		)
		return True, read

	def __str__(self) -> str:
		return f"RequestLineParser({self.value})"


class HeadersParser:
	__slots__ = ["headers", "contentType", "contentLength", "line"]

	def __init__(self) -> None:
		self.line: LineParser = LineParser()
		self.headers: dict[str, str] = {}
		self.contentType: str | None = None
		self.contentLength: int | None = None

	def flush(self) -> "HTTPHeaders":
		res = HTTPHeaders(self.headers, self.contentType, self.contentLength)
		self.reset()
		return res

	def reset(self) -> "HeadersParser":
		self.line.reset()
		self.headers = {}
		self.contentType = None
		self.contentLength = None
		return self

	def feed(
		self, chunk: bytes, start: int = 0
	) -> tuple[str | Literal[False] | None, int]:
		"""Returns the name of the parsed header, `False` on the empty line
		that ends the headers, and `None` when more data is needed."""
		line, read = self.line.feed(chunk, start)
		if line is None:
			return None, read
		elif not line:
			return False, read
		# Headers are expected to be in ASCII, anything else is kept
		# as latin-1 rather than failing the whole request.
		ln: str = line.decode("latin-1")
		i = ln.find(":")
		if i == -1:
			return None, read
		h = ln[:i].lower().strip()
		v = ln[i + 1 :].strip()
		if h == "content-length":
			try:
				self.contentLength = int(v)
			except ValueError:
				self.contentLength = None
		elif h == "content-type":
			self.contentType = v
		n: str = headername(h)
		self.headers[n] = v
		return n, read

	def __str__(self) -> str:
		return f"HeadersParser({self.headers})"


class BodyLengthParser:
	"""Parses the body of a request with `Content-Length` set. The body is
	flushed with whatever the current chunk holds, so it may be incomplete:
	files are served regardless of what the request carries."""

	__slots__ = ["expected", "read", "data"]

	def __init__(self) -> None:
		self.expected: int = 0
		self.read: int = 0
		self.data: list[bytes] = []

	def flush(self) -> HTTPBodyBlob:
		res = HTTPBodyBlob(b"".join(self.data), self.read, self.expected - self.read)
		self.reset()
		return res

	def reset(self, length: int = 0) -> "BodyLengthParser":
		self.expected = length
		self.read = 0
		self.data.clear()
		return self

	def feed(self, chunk: bytes, start: int = 0) -> tuple[bool, int]:
		left: int = len(chunk) - start
		to_read: int = min(left, self.expected - self.read)
		self.data.append(chunk[start : start + to_read])
		self.read += to_read
		return self.read == self.expected, to_read


# -----------------------------------------------------------------------------
#
# HTTP PARSER
#
# -----------------------------------------------------------------------------


class HTTPParser:
	"""A stateful HTTP request parser, yielding atoms as they are parsed."""

	METHOD_HAS_BODY: ClassVar[set[str]] = {"POST", "PUT", "PATCH"}

	def __init__(self) -> None:
		self.requestLineParser: RequestLineParser = RequestLineParser()
		self.headers: HeadersParser = HeadersParser()
		self.body: BodyLengthParser = BodyLengthParser()
		self.parser: RequestLineParser | HeadersParser | BodyLengthParser = (
			self.requestLineParser
		)
		self.requestLine: HTTPRequestLine | None = None
		self.requestHeaders: HTTPHeaders | None = None

	def request(self, line: HTTPRequestLine, body: HTTPBodyBlob) -> HTTPRequest:
		self.parser = self.requestLineParser.reset()
		return HTTPRequest(
			method=line.method,
			path=line.path,
			query=parseQuery(line.query),
			headers=self.requestHeaders,
			body=body,
			protocol=line.protocol,
		)

	def feed(self, chunk: bytes) -> Iterator[HTTPAtom]:
		size: int = len(chunk)
		offset: int = 0
		while offset < size:
			# When a chunk is partially read, the underlying parser keeps
			# a buffer up until it is flushed, so we never re-feed it.
			ln, read = self.parser.feed(chunk, offset)
			offset += read
			line: HTTPRequestLine | None = self.requestLine
			if ln is None:
				continue
			elif self.parser is self.requestLineParser:
				if ln is False:
					self.requestLineParser.reset()
					yield HTTPProcessingStatus.BadFormat
				elif line := self.requestLineParser.flush():
					self.requestLine = line
					self.requestHeaders = None
					self.parser = self.headers
					yield line
			elif line is None:
				self.parser = self.requestLineParser.reset()
				yield HTTPProcessingStatus.BadFormat
			elif self.parser is self.headers:
				if ln is False:
					headers = self.headers.flush()
					self.requestHeaders = headers
					yield headers
					# Only some methods have a body, and only when they
					# declare its length.
					length: int = headers.contentLength or 0
					if line.method in self.METHOD_HAS_BODY and length > 0:
						self.parser = self.body.reset(length)
						yield HTTPProcessingStatus.Body
					else:
						yield self.request(line, HTTPBodyBlob(b"", 0))
			else:
				# NOTE: The body may have remaining data that has not been
				# received yet, see `HTTPRequest.hasUnreadBody`.
				yield self.request(line, self.body.flush())


def parseQuery(text: str) -> dict[str, str]:
	res: dict[str, str] = {}
	for item in text.split("&") if text else ():
		kv = item.split("=", 1)
		if len(kv) == 1:
			res[item] = ""
		else:
			res[kv[0]] = kv[1]
	return res


# EOF
