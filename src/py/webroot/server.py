import asyncio
import socket
import threading
from dataclasses import dataclass
from pathlib import Path
from signal import SIGINT, SIGTERM
from typing import Any, Callable, Literal, NamedTuple

from .config import HOST, LOG_REQUESTS, PORT, ServerConfig, configure
from .documents import ErrorDocuments
from .http.model import (
	HTTPBodyWriter,
	HTTPProcessingStatus,
	HTTPRequest,
	HTTPResponse,
)
from .http.parser import HTTPParser
from .resolver import RequestLog, RequestObserver, RequestResolver
from .utils.limits import LimitType, unlimit
from .utils.logging import LogLevel, debug, error, event, exception, info, logged, warning


@dataclass(slots=True)
class ServerState:
	isRunning: bool = True

	def stop(self) -> None:
		info("Server stopping…")
		self.isRunning = False

	def onException(
		self, loop: asyncio.AbstractEventLoop, context: dict[str, Any]
	) -> None:
		e = context.get("exception")
		if e:
			exception(e)


class ServerOptions(NamedTuple):
	host: str = HOST
	port: int = PORT
	backlog: int = 10_000
	# This is the polling timeout for accepting new requests. Every second is
	# good
	polling: float = 1.0
	readsize: int = 4_096
	# Idle time after which a kept-alive connection is closed
	keepalive: float = 60.0
	logRequests: bool = LOG_REQUESTS
	condition: Callable[[], bool] | None = None
	stopSignals: bool = True


OPTIONS: ServerOptions = ServerOptions()

SERVER_ERROR: bytes = (
	b"HTTP/1.1 500 Internal Server Error\r\n"
	b"Content-Type: text/plain\r\n"
	b"Content-Length: 39\r\n"
	b"Connection: close\r\n"
	b"\r\n"
	b"Internal server error: Request not sent"
)

SERVER_BAD_REQUEST: bytes = (
	b"HTTP/1.1 400 Bad Request\r\n"
	b"Content-Type: text/plain\r\n"
	b"Content-Length: 11\r\n"
	b"Connection: close\r\n"
	b"\r\n"
	b"Bad Request"
)


def logRequest(log: RequestLog) -> None:
	"""The default request observer, logging one event per request."""
	event(log.method, log.path, Status=log.status, Outcome=log.outcome.name)


class AIOSocketBodyWriter(HTTPBodyWriter):
	"""Specialized body writer to work with AIO sockets."""

	__slots__ = ["client", "loop"]

	def __init__(
		self,
		client: "socket.socket",
		loop: asyncio.AbstractEventLoop,
	) -> None:
		super().__init__()
		self.client: socket.socket = client
		self.loop: asyncio.AbstractEventLoop = loop

	async def _writeBytes(
		self, chunk: bytes | None | Literal[False], more: bool = False
	) -> bool:
		if chunk is None or chunk is False:
			pass
		else:
			await self.loop.sock_sendall(self.client, chunk)
		return True

	async def _writeFile(self, path: Path, size: int = 64_000) -> bool:
		# NOTE: `sock_sendfile` falls back to reading and sending chunks
		# when `sendfile` is not available.
		with open(path, "rb") as f:
			await self.loop.sock_sendfile(self.client, f)
		return True


# NOTE: Based on benchmarks, this gave the best performance.
class AIOSocketServer:
	"""AsyncIO backend using sockets directly."""

	@classmethod
	async def OnRequest(
		cls,
		resolver: RequestResolver,
		client: socket.socket,
		*,
		loop: asyncio.AbstractEventLoop,
		options: ServerOptions,
	) -> None:
		"""Asynchronous worker, processing the requests sent by the client
		until the connection is closed or times out."""
		size: int = options.readsize
		buffer = bytearray(size)
		keep_alive: bool = True
		iteration: int = 0
		status: HTTPProcessingStatus = HTTPProcessingStatus.Processing
		read_count: int = 0
		res_count: int = 0
		req_count: int = 0
		try:
			parser: HTTPParser = HTTPParser()
			writer: AIOSocketBodyWriter = AIOSocketBodyWriter(client, loop)
			# NOTE: A client may send all its requests over a single
			# connection, which we keep until there's `Connection: close`, an
			# HTTP/1.0 request or the keepalive timeout has expired.
			while keep_alive and not writer.shouldClose:
				try:
					n = await asyncio.wait_for(
						loop.sock_recv_into(client, buffer),
						timeout=options.keepalive,
					)
					read_count += n
				except asyncio.TimeoutError:
					status = HTTPProcessingStatus.Timeout
					break
				if not n:
					# A no-data means a close
					status = HTTPProcessingStatus.NoData
					# We need to break here as otherwise we'll be in a hot loop.
					break
				# NOTE: With HTTP Pipelining, we may receive more than one
				# request in the same payload, so we need to be prepared
				# to answer more than one request.
				stream = parser.feed(bytes(buffer[:n]))
				logged(LogLevel.Debug) and debug(
					"Reading Request(s)",
					Client=f"{id(client):x}",
					Read=n,
					Iteration=iteration,
					Count=req_count,
				)
				for atom in stream:
					if atom is HTTPProcessingStatus.BadFormat:
						warning("Malformed request", Iteration=iteration)
						await writer.write(SERVER_BAD_REQUEST)
						writer.shouldClose = True
						status = atom
						break
					elif isinstance(atom, HTTPRequest):
						req: HTTPRequest = atom
						req_count += 1
						if (
							req.protocol == "HTTP/1.0"
							or (req.header("Connection") or "").lower() == "close"
							or req.hasUnreadBody
						):
							keep_alive = False
						res = await cls.SendResponse(req, resolver, writer)
						if res:
							res_count += 1
							if res.shouldClose:
								keep_alive = False
						if not keep_alive:
							break
				iteration += 1
			if res_count != req_count:
				warning("Incomplete responses", Requests=req_count, Responses=res_count)
			elif status is HTTPProcessingStatus.NoData and read_count and not res_count:
				# TODO: We should extract the client IP
				warning(
					"Client did not feed a complete request",
					ReadCount=read_count,
					Status=status.name,
				)
		except ConnectionError as e:
			logged(LogLevel.Debug) and debug(
				"Client connection lost", Reason=str(e), Requests=req_count
			)
		except Exception as e:
			exception(e)
		finally:
			# NOTE: The above loop takes care of keep alive, so we always close
			# the connection on exit.
			client.close()

	@staticmethod
	async def SendResponse(
		request: HTTPRequest,
		resolver: RequestResolver,
		writer: HTTPBodyWriter,
	) -> HTTPResponse | None:
		"""Resolves the request and sends the response using the given
		writer. HEAD responses only get their head written."""
		req: HTTPRequest = request
		res: HTTPResponse | None = None
		sent: bool = False
		try:
			res = resolver.process(req)
			# We send the request head
			await writer.write(res.head())
			sent = True
			if req.method.upper() != "HEAD":
				await writer.write(res.body)
		except BrokenPipeError:
			# Client did an early close
			sent = True
			writer.shouldClose = True
		except Exception as e:
			exception(e)
			writer.shouldClose = True
		if not sent:
			try:
				warning(
					"Server did not send a response",
					Method=req.method,
					Path=req.path,
				)
				await writer.write(SERVER_ERROR)
			except Exception as e:
				exception(e)
		return res

	@classmethod
	async def Serve(
		cls,
		resolver: RequestResolver,
		options: ServerOptions = ServerOptions(),
	) -> None:
		"""Main server coroutine."""
		server = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
		server.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
		server.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
		port: int = options.port
		try:
			server.bind((options.host, port))
		except OSError as e:
			warning(f"Could not bind to {options.host}:{port}, trying other ports.")
			bound: bool = False
			for p in range(options.port + 1, options.port + 5):
				try:
					server.bind((options.host, p))
				except OSError:
					continue
				bound = True
				port = p
				info(f"Found alternate available port: {port}")
				break
			if not bound:
				server.close()
				error(
					f"Unable to bind to {options.host}:{options.port}, aborting.",
					"HOSTPORTERR",
				)
				raise e

		# The argument is the backlog of connections that will be accepted before
		# they are refused.
		server.listen(options.backlog)
		# This is what we need to use it with asyncio
		server.setblocking(False)

		tasks: set[asyncio.Task[None]] = set()
		loop = asyncio.get_running_loop()

		# Manage server state
		state = ServerState()
		# Registers handlers for signals and exception (so that we log them). Note
		# that we'll get a `set_wakeup_fd only works in main thread of the main interpreter`
		# when this is not run out of the main thread.
		if (
			options.stopSignals
			and threading.current_thread() is threading.main_thread()
		):
			loop.add_signal_handler(SIGINT, lambda: state.stop())
			loop.add_signal_handler(SIGTERM, lambda: state.stop())
		loop.set_exception_handler(state.onException)

		info(
			"webroot listening",
			icon="🚀",
			Host=options.host,
			Port=port,
			Root=str(resolver.root),
		)

		try:
			while state.isRunning:
				if options.condition and not options.condition():
					break
				try:
					client, _ = await asyncio.wait_for(
						loop.sock_accept(server), timeout=options.polling or 1.0
					)
				except asyncio.TimeoutError:
					continue
				except OSError as e:
					# This can be: [OSError] [Errno 24] Too many open files
					if e.errno == 24:
						await asyncio.sleep(0.1)  # Short delay before retrying
					else:
						exception(e)
					continue
				task = loop.create_task(
					cls.OnRequest(resolver, client, loop=loop, options=options)
				)
				tasks.add(task)
				task.add_done_callback(tasks.discard)
		finally:
			server.close()
			for task in tasks:
				task.cancel()
			await asyncio.gather(*tasks, return_exceptions=True)


def run(
	config: ServerConfig | None = None,
	*,
	host: str = OPTIONS.host,
	port: int = OPTIONS.port,
	backlog: int = OPTIONS.backlog,
	condition: Callable[[], bool] | None = None,
	polling: float = OPTIONS.polling,
	logRequests: bool = OPTIONS.logRequests,
	keepalive: float = OPTIONS.keepalive,
	observer: RequestObserver | None = None,
) -> None:
	"""High level function to run the server, serving the default
	directory when no configuration is given."""
	if config is None:
		config, _ = configure()
	unlimit(LimitType.Files)
	options = ServerOptions(
		host=host,
		port=port,
		backlog=backlog,
		condition=condition,
		polling=polling,
		logRequests=logRequests,
		keepalive=keepalive,
	)
	resolver = RequestResolver(
		config,
		ErrorDocuments.FromConfig(config),
		observer=observer or (logRequest if logRequests else None),
	)
	try:
		asyncio.run(AIOSocketServer.Serve(resolver, options))
	except KeyboardInterrupt:
		event("ManualShutdown")
	event("EOK")


# EOF
