import os
import posixpath
import stat
import time
from pathlib import Path
from typing import NamedTuple
from urllib.parse import quote

from .paths import urlpath
from .utils.files import iconFor
from .utils.htmpl import H, Node, html, raw

# --
# # Directory listings
#
# Listings enumerate the direct children of a directory, skipping hidden
# (dot) entries, and render them with the parent entry first, then
# directories, then files, each group in case-insensitive order. Nothing is
# cached: each listing stats the directory afresh.

LISTING_CSS: str = """
:root {
	font-family: sans-serif;
	font-size: 14px;
	line-height: 1.35em;
	padding: 20px;
	background: #F0F0F0;
}
h1 {
	margin-top: 1.25em;
	margin-bottom: 1.25em;
	line-height: 1.25em;
}
h1 a {
	color: inherit;
}
ul#files {
	list-style: none;
	padding: 0px;
	margin: 1.25em 0em;
}
ul#files li {
	display: flex;
	padding: 0.25em 10px;
	border-bottom: 1px solid #E0E0E0;
}
ul#files li.header {
	font-weight: bold;
}
ul#files a {
	display: flex;
	flex: 1;
	text-decoration: none;
	color: #0645AD;
}
ul#files .name {
	flex: 1;
}
ul#files .size {
	width: 10em;
	text-align: right;
}
ul#files .date {
	width: 14em;
	text-align: right;
}
ul#files .icon .name::before {
	content: "\\1F4C4";
	padding-right: 0.5em;
}
ul#files .icon-folder .name::before {
	content: "\\1F4C1";
}
ul#files .icon-image .name::before {
	content: "\\1F5BC";
}
ul#files .icon-film .name::before {
	content: "\\1F39E";
}
ul#files .icon-box .name::before {
	content: "\\1F4E6";
}
"""

DATE_FORMAT: str = "%Y-%m-%d %H:%M:%S"

PARENT: str = ".."


class ListingEntry(NamedTuple):
	"""A child of a listed directory. When the entry could not be stat'ed,
	`size` and `modifiedTime` are `None` and it is listed as a file."""

	name: str
	isDirectory: bool
	size: int | None = None
	modifiedTime: float | None = None

	@property
	def isParent(self) -> bool:
		return self.name == PARENT

	@staticmethod
	def FromDirEntry(entry: os.DirEntry[str]) -> "ListingEntry":
		try:
			# NOTE: This follows symlinks, so a link to a directory is
			# listed as a directory.
			stats = entry.stat()
		except OSError:
			return ListingEntry(entry.name, False)
		is_dir: bool = stat.S_ISDIR(stats.st_mode)
		return ListingEntry(
			name=entry.name,
			isDirectory=is_dir,
			size=None if is_dir else stats.st_size,
			modifiedTime=stats.st_mtime,
		)


def displayName(name: str) -> str:
	"""Names that are not valid UTF-8 come from `os.scandir` with surrogate
	escapes, which are shown as replacement characters."""
	return os.fsencode(name).decode("utf8", errors="replace")


def isHidden(name: str) -> bool:
	return name.startswith(".")


def sortKey(entry: ListingEntry) -> tuple[bool, bool, str, str]:
	"""Parent first, then directories, then case-insensitive names (with
	the exact name as tie-breaker so that the order is stable)."""
	return (not entry.isParent, not entry.isDirectory, entry.name.lower(), entry.name)


def listEntries(absoluteDir: Path, *, showParent: bool = False) -> list[ListingEntry]:
	"""Lists the non-hidden children of the directory, sorted, raising
	`OSError` when the directory can't be read."""
	entries: list[ListingEntry] = []
	with os.scandir(absoluteDir) as children:
		for child in children:
			if not isHidden(child.name):
				entries.append(ListingEntry.FromDirEntry(child))
	if showParent:
		entries.append(ListingEntry(PARENT, True))
	return sorted(entries, key=sortKey)


def isRoot(directory: Path, root: Path) -> bool:
	return os.path.normpath(os.path.abspath(directory)) == os.path.normpath(
		os.path.abspath(root)
	)


def directoryPath(requestPath: str) -> str:
	"""Ensures the request path denotes a directory, like `/a/b/`."""
	return requestPath if requestPath.endswith("/") else f"{requestPath}/"


def entryHref(directory: str, entry: ListingEntry) -> str:
	if entry.isParent:
		parent: str = posixpath.dirname(directory.rstrip("/"))
		return urlpath(directoryPath(parent or "/"))
	else:
		name: bytes = os.fsencode(entry.name)
		return urlpath(directory) + quote(name + b"/" if entry.isDirectory else name)


def formatTime(value: float | None) -> str:
	return time.strftime(DATE_FORMAT, time.localtime(value)) if value is not None else ""


def renderEntry(directory: str, entry: ListingEntry) -> Node:
	show_details: bool = not (entry.isDirectory or entry.isParent)
	size: str = str(entry.size) if show_details and entry.size is not None else ""
	date: str = formatTime(entry.modifiedTime) if show_details else ""
	name: str = displayName(entry.name)
	icon: str = iconFor(name, entry.isDirectory)
	return H.li(
		H.a(
			H.span(name, _="name"),
			H.span(size, _="size"),
			H.span(date, _="date"),
			href=entryHref(directory, entry),
			title=name,
			_=f"icon icon-{icon}",
		)
	)


def renderBreadcrumbs(directory: str) -> list[Node | str]:
	"""Renders the path as links, each leading to the corresponding parent."""
	crumbs: list[Node | str] = [H.a("~", href="/")]
	prefix: str = "/"
	for part in (_ for _ in directory.split("/") if _):
		prefix = f"{prefix}{part}/"
		crumbs.append(" / ")
		crumbs.append(H.a(part, href=urlpath(prefix)))
	return crumbs


def renderListing(absoluteDir: Path, requestPath: str, *, root: Path) -> str:
	"""Renders the listing page of `absoluteDir`, which is available at
	`requestPath`, raising `OSError` when the directory can't be read."""
	directory: str = directoryPath(requestPath)
	entries = listEntries(absoluteDir, showParent=not isRoot(absoluteDir, root))
	return "".join(
		html(
			H.html(
				H.head(
					H.meta(charset="utf-8"),
					H.meta(
						name="viewport",
						content="width=device-width, initial-scale=1.0",
					),
					H.title(f"Listing of {directory}"),
					H.style(raw(LISTING_CSS)),
				),
				H.body(
					H.h1(*renderBreadcrumbs(directory)),
					H.ul(
						H.li(
							H.span("Name", _="name"),
							H.span("Size", _="size"),
							H.span("Modified", _="date"),
							_="header",
						),
						[renderEntry(directory, _) for _ in entries],
						id="files",
						_="view-details",
					),
				),
			),
			doctype="html",
		)
	)


# EOF
