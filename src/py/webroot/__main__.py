import argparse
import sys

from .config import DIRECTORY, HOST, PORT, configure
from .errors import ConfigurationError
from .server import run
from .utils.logging import error, info


def parseArgs(args: list[str]) -> argparse.Namespace:
	parser = argparse.ArgumentParser(
		prog="webroot",
		description="Serves the files of a directory over HTTP",
		formatter_class=argparse.ArgumentDefaultsHelpFormatter,
	)
	parser.add_argument(
		"directory",
		nargs="?",
		default=DIRECTORY,
		help="The root directory to serve",
	)
	parser.add_argument(
		"-p",
		"--port",
		action="store",
		dest="port",
		type=int,
		help="Specifies the port",
		default=PORT,
	)
	parser.add_argument(
		"-H",
		"--host",
		action="store",
		dest="host",
		help="Specifies the host to bind to",
		default=HOST,
	)
	parser.add_argument(
		"-i",
		"--serve-index",
		action="store_true",
		dest="serveIndex",
		help="Lists the contents of directories without an index file",
	)
	parser.add_argument(
		"-a",
		"--accept-any-method",
		action="store_true",
		dest="acceptAnyMethod",
		help="Serves files for any method, not only GET",
	)
	parser.add_argument(
		"--no-index-html",
		action="store_true",
		dest="noIndexHtml",
		help="Does not serve index.html for directory paths",
	)
	parser.add_argument(
		"-r",
		"--root-file",
		action="store",
		dest="rootFile",
		help="The file served for /",
		default="/index.html",
	)
	parser.add_argument(
		"--not-found",
		action="store",
		dest="notFound",
		metavar="PATH",
		help="The document served for 404 responses",
	)
	parser.add_argument(
		"--method-not-allowed",
		action="store",
		dest="methodNotAllowed",
		metavar="PATH",
		help="The document served for 405 responses",
	)
	parser.add_argument(
		"-q",
		"--quiet",
		action="store_true",
		dest="quiet",
		help="Does not log each request",
	)
	return parser.parse_args(args)


def main(args: list[str] | None = None) -> int:
	options = parseArgs(sys.argv[1:] if args is None else args)
	try:
		config, _ = configure(
			{
				"directory": options.directory,
				"rootfile": options.rootFile,
				"acceptonlyget": not options.acceptAnyMethod,
				"useindexhtml": not options.noIndexHtml,
				"serveindex": options.serveIndex,
				"errordocument": {
					"_404": options.notFound,
					"_405": options.methodNotAllowed,
				},
			}
		)
	except ConfigurationError as e:
		error(e.message, "CONFIG", Option=e.option)
		return 1
	info("Serving directory", Path=str(config.rootDirectory))
	run(config, host=options.host, port=options.port, logRequests=not options.quiet)
	return 0


if __name__ == "__main__":
	sys.exit(main())

# EOF
