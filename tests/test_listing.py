import os
from pathlib import Path

import pytest

from webroot.listing import ListingEntry, entryHref, listEntries, renderListing


def names(entries: list[ListingEntry]) -> list[str]:
	return [_.name for _ in entries]


def test_list_entries_order(root: Path) -> None:
	entries = listEntries(root / "docs", showParent=True)
	assert names(entries) == ["..", "api", "zeta", "a.txt", "B.txt", "Guide.md"]
	assert [_.isDirectory for _ in entries] == [True, True, True, False, False, False]


def test_list_entries_excludes_hidden(root: Path) -> None:
	assert ".hidden" not in names(listEntries(root / "docs"))
	assert ".env" not in names(listEntries(root))


def test_list_entries_details(root: Path) -> None:
	entries = {_.name: _ for _ in listEntries(root / "docs")}
	assert entries["B.txt"].size == 2
	assert entries["B.txt"].modifiedTime is not None
	assert entries["api"].size is None


def test_list_entries_keeps_broken_links(root: Path) -> None:
	os.symlink(root / "nowhere", root / "docs" / "broken")
	entries = {_.name: _ for _ in listEntries(root / "docs")}
	assert entries["broken"] == ListingEntry("broken", False)


def test_list_entries_directory_links(root: Path) -> None:
	os.symlink(root / "docs" / "api", root / "empty" / "linked")
	(entry,) = listEntries(root / "empty")
	assert entry.name == "linked"
	assert entry.isDirectory is True
	assert entry.size is None


def test_list_entries_empty(root: Path) -> None:
	assert listEntries(root / "empty") == []
	assert names(listEntries(root / "empty", showParent=True)) == [".."]


def test_list_entries_missing(root: Path) -> None:
	with pytest.raises(OSError):
		listEntries(root / "missing")


def test_entry_href() -> None:
	assert entryHref("/docs/", ListingEntry("..", True)) == "/"
	assert entryHref("/a/b/", ListingEntry("..", True)) == "/a/"
	assert entryHref("/docs/", ListingEntry("api", True)) == "/docs/api/"
	assert entryHref("/docs/", ListingEntry("my file.txt", False)) == "/docs/my%20file.txt"


def test_render_listing(root: Path) -> None:
	page = renderListing(root / "docs", "/docs/", root=root)
	assert page.startswith("<!DOCTYPE html>")
	assert '<a href="/docs/api/"' in page
	assert '<a href="/docs/Guide.md"' in page
	assert '<a href="/"' in page
	assert ".hidden" not in page
	# Directories come before files
	assert page.index("/docs/zeta/") < page.index("/docs/a.txt")
	assert page.index("/docs/a.txt") < page.index("/docs/B.txt")
	assert "icon-folder" in page


def test_render_listing_at_root_has_no_parent(root: Path) -> None:
	page = renderListing(root, "/", root=root)
	assert 'title=".."' not in page
	assert '<a href="/docs/"' in page


def test_render_listing_escapes_names(root: Path) -> None:
	(root / "empty" / "<b>.txt").write_text("x")
	page = renderListing(root / "empty", "/empty/", root=root)
	assert '<span class="name">&lt;b&gt;.txt</span>' in page
	assert "/empty/%3Cb%3E.txt" in page


def undecodableName(directory: Path) -> Path:
	path = directory / os.fsdecode(b"bad\xff.txt")
	try:
		path.write_text("x")
	except (OSError, UnicodeEncodeError):
		pytest.skip("The filesystem does not accept non UTF-8 names")
	return path


def test_render_listing_with_undecodable_name(root: Path) -> None:
	undecodableName(root / "empty")
	page = renderListing(root / "empty", "/empty/", root=root)
	assert '<span class="name">bad\ufffd.txt</span>' in page
	assert 'href="/empty/bad%FF.txt"' in page


def test_render_listing_is_idempotent(root: Path) -> None:
	assert renderListing(root / "docs", "/docs/", root=root) == renderListing(
		root / "docs", "/docs/", root=root
	)


# EOF
