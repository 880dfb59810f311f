from pathlib import Path

import pytest

from webroot.config import configure
from webroot.documents import (
	BUILTIN_DOCUMENTS,
	ErrorDocuments,
	ErrorKind,
	validateDocument,
)


def test_builtin_documents() -> None:
	documents = ErrorDocuments()
	assert documents.load(ErrorKind.MethodNotAllowed) == BUILTIN_DOCUMENTS[
		ErrorKind.MethodNotAllowed
	]
	page = documents.notFound("/missing.txt")
	assert "404 Not Found" in page
	assert "<code>/missing.txt</code>" in page
	assert "{requestedURL}" not in page


def test_not_found_escapes_url() -> None:
	page = ErrorDocuments().notFound('/<script>alert("x")</script>')
	assert "<script>" not in page
	assert "&lt;script&gt;" in page


def test_configured_documents(documents: dict[str, Path]) -> None:
	provider = ErrorDocuments(documents["_404"], documents["_405"])
	assert provider.notFound("/a&b") == "<p>Missing: /a&amp;b</p>"
	assert provider.methodNotAllowed() == "<p>Only GET here</p>"


def test_legacy_token(tmp_path: Path) -> None:
	path = tmp_path / "404.html"
	path.write_text("<p><!--${404URL}--> and {requestedURL}</p>")
	assert ErrorDocuments(path).notFound("/x") == "<p>/x and /x</p>"


def test_documents_are_read_per_request(documents: dict[str, Path]) -> None:
	provider = ErrorDocuments(documents["_404"])
	assert provider.notFound("/a") == "<p>Missing: /a</p>"
	documents["_404"].write_text("<p>Gone: {requestedURL}</p>")
	assert provider.notFound("/a") == "<p>Gone: /a</p>"


def test_load_failure_raises(documents: dict[str, Path]) -> None:
	provider = ErrorDocuments(documents["_404"])
	documents["_404"].unlink()
	with pytest.raises(OSError):
		provider.notFound("/a")


def test_validate_document(tmp_path: Path, documents: dict[str, Path]) -> None:
	assert validateDocument(ErrorKind.NotFound, None) == (None, None)
	assert validateDocument(ErrorKind.NotFound, documents["_404"]) == (
		documents["_404"],
		None,
	)
	path, message = validateDocument(ErrorKind.NotFound, tmp_path / "nope.html")
	assert path is None
	assert message and "404" in message
	# A directory can't be read as a document either
	path, message = validateDocument(ErrorKind.MethodNotAllowed, tmp_path)
	assert path is None
	assert message and "405" in message


def test_from_config(root: Path, documents: dict[str, Path]) -> None:
	config, warnings = configure({"directory": root, "errordocument": documents})
	assert warnings == []
	provider = ErrorDocuments.FromConfig(config)
	assert provider.path(ErrorKind.NotFound) == documents["_404"]
	assert provider.path(ErrorKind.MethodNotAllowed) == documents["_405"]


# EOF
