import os
from pathlib import Path

import pytest

from webroot.config import ServerConfig, configure
from webroot.documents import ErrorDocuments
from webroot.http.model import HTTPBodyFile, HTTPRequest
from webroot.resolver import (
	INTERNAL_ERROR_BODY,
	Outcome,
	RequestLog,
	RequestResolver,
)


def body(response) -> str:
	return response.read().decode("utf8")


# --
# ## Files


def test_root_serves_index(resolver: RequestResolver) -> None:
	res = resolver.resolve("GET", "/")
	assert res.status == 200
	assert res.getHeader("Content-Type") == "text/html"
	assert res.getHeader("Content-Length") == str(len("<h1>Home</h1>"))
	assert isinstance(res.body, HTTPBodyFile)
	assert body(res) == "<h1>Home</h1>"


def test_file_content_types(resolver: RequestResolver) -> None:
	assert resolver.resolve("GET", "/style.css").getHeader("Content-Type") == "text/css"
	assert resolver.resolve("GET", "/assets/logo.png").getHeader("Content-Type") == "image/png"
	assert resolver.resolve("GET", "/docs/a.txt").getHeader("Content-Type") == "text/plain"


def test_directory_index(resolver: RequestResolver) -> None:
	res = resolver.resolve("GET", "/assets/")
	assert res.status == 200
	assert body(res) == "<h1>Assets</h1>"


def test_custom_root_file(root: Path) -> None:
	config, _ = configure({"directory": root, "rootfile": "about.txt"})
	res = RequestResolver(config).resolve("GET", "/")
	assert res.status == 200
	assert body(res) == "About us"


def test_root_file_is_not_url_decoded(root: Path) -> None:
	(root / "a%20b.html").write_text("encoded")
	(root / "a b.html").write_text("decoded")
	config, _ = configure({"directory": root, "rootfile": "a%20b.html"})
	assert config.rootFile == "/a%20b.html"
	assert body(RequestResolver(config).resolve("GET", "/")) == "encoded"


def test_root_file_stays_in_root(root: Path) -> None:
	(root.parent / "outside.html").write_text("outside")
	config, _ = configure({"directory": root, "rootfile": "../outside.html"})
	assert RequestResolver(config).resolve("GET", "/").status == 404


def test_traversal_stays_in_root(resolver: RequestResolver, root: Path) -> None:
	(root.parent / "secret.txt").write_text("secret")
	for path in ("/../secret.txt", "/%2e%2e/secret.txt", "/docs/../../secret.txt"):
		res = resolver.resolve("GET", path)
		assert res.status == 404
		assert "secret" not in body(res).replace("secret.txt", "")
	res = resolver.resolve("GET", "/docs/../about.txt")
	assert res.status == 200
	assert body(res) == "About us"


def test_hidden_files_are_served(resolver: RequestResolver) -> None:
	# Only listings hide dot files
	assert resolver.resolve("GET", "/.env").status == 200


# --
# ## Fallback


def test_missing_file(resolver: RequestResolver) -> None:
	res = resolver.resolve("GET", "/missing.txt")
	assert res.status == 404
	assert res.getHeader("Content-Type") == "text/html"
	assert "<code>/missing.txt</code>" in body(res)


def test_missing_file_with_document(root: Path, documents: dict[str, Path]) -> None:
	config, _ = configure({"directory": root, "errordocument": documents})
	res = RequestResolver(config).resolve("GET", "/missing.txt")
	assert res.status == 404
	assert body(res) == "<p>Missing: /missing.txt</p>"


def test_not_found_echoes_sanitized_path(resolver: RequestResolver) -> None:
	res = resolver.resolve("GET", "/a//b/../<c>")
	assert res.status == 404
	assert "/a/&lt;c&gt;" in body(res)


def test_directory_redirect(resolver: RequestResolver) -> None:
	res = resolver.resolve("GET", "/docs")
	assert res.status == 302
	assert res.getHeader("Location") == "/docs/"
	assert res.getHeader("Content-Length") == "0"
	assert body(res) == ""


def test_directory_redirect_is_encoded(resolver: RequestResolver, root: Path) -> None:
	(root / "my docs").mkdir()
	res = resolver.resolve("GET", "/my%20docs")
	assert res.status == 302
	assert res.getHeader("Location") == "/my%20docs/"


def test_directory_redirect_without_listing(root: Path) -> None:
	config, _ = configure({"directory": root})
	assert RequestResolver(config).resolve("GET", "/docs").status == 302


def test_listing(resolver: RequestResolver) -> None:
	res = resolver.resolve("GET", "/docs/")
	assert res.status == 200
	assert res.getHeader("Content-Type") == "text/html; charset=utf-8"
	assert res.getHeader("X-Content-Type-Options") == "nosniff"
	page = body(res)
	assert res.getHeader("Content-Length") == str(len(page.encode("utf8")))
	for name in ("api", "zeta", "a.txt", "B.txt", "Guide.md"):
		assert f">{name}</span>" in page
	assert ".hidden" not in page
	assert page.index(">zeta<") < page.index(">a.txt<") < page.index(">B.txt<")


def test_listing_with_undecodable_name(resolver: RequestResolver, root: Path) -> None:
	try:
		(root / "empty" / os.fsdecode(b"bad\xff.txt")).write_text("x")
	except (OSError, UnicodeEncodeError):
		pytest.skip("The filesystem does not accept non UTF-8 names")
	res = resolver.resolve("GET", "/empty/")
	assert res.status == 200
	assert "bad\ufffd.txt" in body(res)


def test_listing_disabled(root: Path) -> None:
	config, _ = configure({"directory": root})
	res = RequestResolver(config).resolve("GET", "/docs/")
	assert res.status == 404


def test_listing_without_index_html(root: Path) -> None:
	config, _ = configure({"directory": root, "serveindex": True, "useindexhtml": False})
	resolver = RequestResolver(config)
	res = resolver.resolve("GET", "/assets/")
	assert res.status == 200
	assert "logo.png" in body(res)
	assert resolver.resolve("GET", "/assets/index.html").status == 200


def test_root_listing_without_root_file(root: Path) -> None:
	(root / "index.html").unlink()
	config, _ = configure({"directory": root, "serveindex": True})
	res = RequestResolver(config).resolve("GET", "/")
	assert res.status == 200
	assert "docs" in body(res)


def test_file_with_trailing_slash(resolver: RequestResolver) -> None:
	assert resolver.resolve("GET", "/about.txt/").status == 404


def test_query_string_is_not_part_of_the_path(resolver: RequestResolver) -> None:
	req = HTTPRequest("GET", "/about.txt", query={"v": "1"})
	res = resolver.process(req)
	assert res.status == 200
	assert body(res) == "About us"


def test_invalid_path(resolver: RequestResolver) -> None:
	res = resolver.resolve("GET", "/caf%E9")
	assert res.status == 404
	res = resolver.resolve("GET", "/a%00b")
	assert res.status == 404


# --
# ## Methods


def test_method_not_allowed(resolver: RequestResolver) -> None:
	res = resolver.resolve("POST", "/index.html")
	assert res.status == 405
	assert res.getHeader("Allow") == "GET"
	assert res.getHeader("Content-Type") == "text/html"
	assert "405 Method Not Allowed" in body(res)


def test_method_not_allowed_with_document(
	root: Path, documents: dict[str, Path]
) -> None:
	config, _ = configure({"directory": root, "errordocument": documents})
	res = RequestResolver(config).resolve("DELETE", "/missing")
	assert res.status == 405
	assert body(res) == "<p>Only GET here</p>"


def test_method_is_case_insensitive(resolver: RequestResolver) -> None:
	assert resolver.resolve("get", "/about.txt").status == 200


def test_accept_any_method(root: Path) -> None:
	config, _ = configure({"directory": root, "acceptonlyget": False})
	resolver = RequestResolver(config)
	assert resolver.resolve("POST", "/about.txt").status == 200
	assert resolver.resolve("HEAD", "/docs").status == 302


# --
# ## Faults


def test_unreadable_document_at_request_time(
	root: Path, documents: dict[str, Path]
) -> None:
	config, _ = configure({"directory": root, "errordocument": documents})
	resolver = RequestResolver(config)
	documents["_404"].unlink()
	res = resolver.resolve("GET", "/missing")
	assert res.status == 500
	assert body(res) == INTERNAL_ERROR_BODY
	assert res.getHeader("Content-Type") == "text/html"


def test_unreadable_document_at_configuration_time(root: Path, tmp_path: Path) -> None:
	config, warnings = configure(
		{"directory": root, "errordocument": {"_404": tmp_path / "nope.html"}}
	)
	assert len(warnings) == 1
	assert config.notFoundDocumentPath is None
	res = RequestResolver(config).resolve("GET", "/missing")
	assert res.status == 404
	assert "404 Not Found" in body(res)


@pytest.mark.skipif(
	not hasattr(os, "geteuid") or os.geteuid() == 0,
	reason="Permissions are not enforced for root",
)
def test_unreadable_file(resolver: RequestResolver, root: Path) -> None:
	path = root / "about.txt"
	path.chmod(0o000)
	try:
		res = resolver.resolve("GET", "/about.txt")
	finally:
		path.chmod(0o644)
	assert res.status == 500


def test_unexpected_failure(config: ServerConfig) -> None:
	class BrokenDocuments(ErrorDocuments):
		def notFound(self, requestedURL: str) -> str:
			raise RuntimeError("Broken")

	res = RequestResolver(config, BrokenDocuments()).resolve("GET", "/missing")
	assert res.status == 500
	assert body(res) == INTERNAL_ERROR_BODY


def test_resolve_never_raises(resolver: RequestResolver) -> None:
	for path in ("", "//", "/..", "/%", "/%zz", "/\\", "/" + "a" * 5_000):
		assert resolver.resolve("GET", path).status in (200, 302, 404, 500)


# --
# ## Observers


def test_observer(resolver: RequestResolver, logs: list[RequestLog]) -> None:
	resolver.resolve("GET", "/")
	resolver.resolve("GET", "/docs")
	resolver.resolve("GET", "/docs/")
	resolver.resolve("GET", "/missing")
	resolver.resolve("PUT", "/")
	assert [(_.method, _.path, _.status, _.outcome) for _ in logs] == [
		("GET", "/", 200, Outcome.FileServed),
		("GET", "/docs", 302, Outcome.RedirectToTrailingSlash),
		("GET", "/docs/", 200, Outcome.ListingServed),
		("GET", "/missing", 404, Outcome.NotFound),
		("PUT", "/", 405, Outcome.MethodNotAllowed),
	]
	assert all(_.duration >= 0 for _ in logs)


def test_failing_observer_is_ignored(config: ServerConfig) -> None:
	def observer(log: RequestLog) -> None:
		raise ValueError("Observer failure")

	res = RequestResolver(config, observer=observer).resolve("GET", "/")
	assert res.status == 200


# EOF
