from pathlib import Path
from urllib.parse import quote, unquote

from .errors import InvalidInput

# --
# # Path sanitization
#
# Request paths are decoded and resolved lexically, so that `.` and `..`
# segments are applied positionally and can never climb above the root. The
# result is a URL path that always starts with `/`, and that has no empty or
# dot segments. Symlinks are not resolved: a link inside the root that points
# outside of it is followed by the filesystem.


def sanitize(rawPath: str | bytes) -> str:
	"""Decodes and normalizes the given raw URL path into a root-confined
	path like `/a/b` (or `/a/b/` when the raw path denotes a directory)."""
	if isinstance(rawPath, bytes):
		try:
			rawPath = rawPath.decode("utf8")
		except UnicodeDecodeError as e:
			raise InvalidInput(f"Path is not valid UTF-8: {rawPath!r}", rawPath) from e
	if not isinstance(rawPath, str):
		raise InvalidInput(
			f"Path must be a string, got {type(rawPath).__name__}", rawPath
		)
	try:
		decoded: str = unquote(rawPath, errors="strict") if "%" in rawPath else rawPath
	except UnicodeDecodeError as e:
		raise InvalidInput(f"Path is not valid UTF-8: {rawPath!r}", rawPath) from e
	if "\0" in decoded:
		raise InvalidInput("Path contains a NUL byte", rawPath)
	return normalize(decoded)


def normalize(path: str) -> str:
	"""Resolves the dot segments of an already decoded path, like `/a/../b`
	into `/b`, without ever climbing above `/`."""
	text: str = path.replace("\\", "/")
	segments: list[str] = []
	last: str = ""
	for segment in text.split("/"):
		last = segment
		if not segment or segment == ".":
			continue
		elif segment == "..":
			if segments:
				segments.pop()
		else:
			segments.append(segment)
	if not segments:
		return "/"
	normalized: str = "/" + "/".join(segments)
	# A trailing `/`, `.` or `..` all mean the path names a directory.
	return f"{normalized}/" if last in ("", ".", "..") else normalized


def confine(root: Path, path: str) -> Path:
	"""Returns the local path for the sanitized `path` within `root`."""
	relative: str = path.strip("/")
	return root.joinpath(relative) if relative else root


def urlpath(path: str) -> str:
	"""Percent-encodes a decoded path so that it can be used in an `href`
	or a `Location` header."""
	return quote(path, safe="/")


# EOF
