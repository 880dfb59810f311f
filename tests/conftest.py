import sys
from pathlib import Path

import pytest

# Runs the tests against the sources when the package is not installed
sys.path.insert(0, str(Path(__file__).parent.parent / "src" / "py"))

from webroot.config import ServerConfig, configure  # NOQA: E402
from webroot.resolver import RequestLog, RequestResolver  # NOQA: E402


def writeFile(path: Path, content: str | bytes = "") -> Path:
	path.parent.mkdir(parents=True, exist_ok=True)
	if isinstance(content, bytes):
		path.write_bytes(content)
	else:
		path.write_text(content, encoding="utf8")
	return path


@pytest.fixture
def root(tmp_path: Path) -> Path:
	"""A served tree like:

	```
	public/
	  index.html
	  about.txt
	  style.css
	  .env
	  docs/         (no index, listable)
	    api/
	    zeta/
	    Guide.md
	    a.txt
	    B.txt
	    .hidden
	  assets/       (with an index)
	    index.html
	    logo.png
	  empty/
	```
	"""
	public = tmp_path / "public"
	writeFile(public / "index.html", "<h1>Home</h1>")
	writeFile(public / "about.txt", "About us")
	writeFile(public / "style.css", "body{}")
	writeFile(public / ".env", "SECRET=1")
	writeFile(public / "docs" / "Guide.md", "# Guide")
	writeFile(public / "docs" / "a.txt", "a")
	writeFile(public / "docs" / "B.txt", "bb")
	writeFile(public / "docs" / ".hidden", "hidden")
	(public / "docs" / "api").mkdir()
	(public / "docs" / "zeta").mkdir()
	writeFile(public / "assets" / "index.html", "<h1>Assets</h1>")
	writeFile(public / "assets" / "logo.png", b"\x89PNG\r\n")
	(public / "empty").mkdir()
	return public


@pytest.fixture
def documents(tmp_path: Path) -> dict[str, Path]:
	"""Custom error documents, stored outside of the served root."""
	return {
		"_404": writeFile(
			tmp_path / "errors" / "404.html",
			"<p>Missing: {requestedURL}</p>",
		),
		"_405": writeFile(
			tmp_path / "errors" / "405.html",
			"<p>Only GET here</p>",
		),
	}


@pytest.fixture
def config(root: Path) -> ServerConfig:
	return configure({"directory": root, "serveindex": True})[0]


@pytest.fixture
def logs() -> list[RequestLog]:
	return []


@pytest.fixture
def resolver(config: ServerConfig, logs: list[RequestLog]) -> RequestResolver:
	return RequestResolver(config, observer=logs.append)


# EOF
