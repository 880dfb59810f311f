from pathlib import Path

from webroot.__main__ import main, parseArgs


def test_parse_args(tmp_path: Path) -> None:
	options = parseArgs(
		[str(tmp_path), "--port", "9000", "--serve-index", "-a", "--not-found", "404.html", "-q"]
	)
	assert options.directory == str(tmp_path)
	assert options.port == 9000
	assert options.serveIndex is True
	assert options.acceptAnyMethod is True
	assert options.noIndexHtml is False
	assert options.rootFile == "/index.html"
	assert options.notFound == "404.html"
	assert options.methodNotAllowed is None
	assert options.quiet is True


def test_missing_directory(tmp_path: Path, capsys) -> None:
	assert main([str(tmp_path / "missing")]) == 1
	assert "Please create directory" in capsys.readouterr().err


# EOF
