import mimetypes
from pathlib import Path

mimetypes.init()

# Extension table served first, before falling back on the platform's
# `mimetypes` database.
MIME_TYPES: dict[str, str] = {
	"html": "text/html",
	"htm": "text/html",
	"css": "text/css",
	"csv": "text/csv",
	"js": "text/javascript",
	"xml": "text/xml",
	"json": "application/json",
	"png": "image/png",
	"jpg": "image/jpeg",
	"jpeg": "image/jpeg",
	"jfif": "image/jpeg",
	"gif": "image/gif",
	"svg": "image/svg+xml",
	"ico": "image/x-icon",
	"webp": "image/webp",
	"tif": "image/tiff",
	"djvu": "image/vnd.djvu",
	"mp3": "audio/mpeg",
	"wav": "audio/x-wav",
	"flac": "audio/flac",
	"ogg": "application/ogg",
	"mp4": "video/mp4",
	"webm": "video/webm",
	"bz2": "application/x-bzip",
	"gz": "application/x-gzip",
}

DEFAULT_CONTENT_TYPE: str = "text/plain"


def extension(path: Path | str) -> str:
	"""Returns the lowercase extension of the path, without the dot."""
	name = Path(path).name
	return name.rsplit(".", 1)[-1].lower() if "." in name.lstrip(".") else ""


def guessContentType(path: Path | str) -> str | None:
	"""Guesses the content type from the given path, returning `None` when
	nothing is known about it."""
	return MIME_TYPES.get(extension(path)) or mimetypes.guess_type(str(path))[0]


def contentType(path: Path | str) -> str:
	"""Guesses the content type from the given path"""
	return guessContentType(path) or DEFAULT_CONTENT_TYPE


# -----------------------------------------------------------------------------
#
# ICONS
#
# -----------------------------------------------------------------------------
# Icon names used by directory listings. Lookups go by extension, then full
# content type, then the `+suffix` of the content type, then its top level
# type, and finally the default.

ICONS: dict[str, str] = {
	# base icons
	"default": "page_white",
	"folder": "folder",
	# generic mime type icons
	"font": "font",
	"image": "image",
	"text": "page_white_text",
	"video": "film",
	# generic mime suffix icons
	"+json": "page_white_code",
	"+xml": "page_white_code",
	"+zip": "box",
	# specific mime type icons
	"application/javascript": "page_white_code_red",
	"application/json": "page_white_code",
	"application/msword": "page_white_word",
	"application/pdf": "page_white_acrobat",
	"application/postscript": "page_white_vector",
	"application/rtf": "page_white_word",
	"application/vnd.ms-excel": "page_white_excel",
	"application/vnd.ms-powerpoint": "page_white_powerpoint",
	"application/x-7z-compressed": "box",
	"application/x-sh": "application_xp_terminal",
	"application/x-tar": "box",
	"application/x-xz": "box",
	"application/xml": "page_white_code",
	"application/zip": "box",
	"image/svg+xml": "page_white_vector",
	"text/css": "page_white_code",
	"text/html": "page_white_code",
	"text/javascript": "page_white_code_red",
	# other, extension-specific icons
	".apk": "box",
	".bat": "application_xp_terminal",
	".bz2": "box",
	".c": "page_white_c",
	".cc": "page_white_cplusplus",
	".cpp": "page_white_cplusplus",
	".cs": "page_white_csharp",
	".db": "page_white_database",
	".deb": "box",
	".dll": "page_white_gear",
	".dmg": "drive",
	".docx": "page_white_word",
	".exe": "application_xp",
	".gz": "box",
	".h": "page_white_h",
	".ini": "page_white_gear",
	".iso": "cd",
	".jar": "box",
	".java": "page_white_cup",
	".lua": "page_white_code",
	".map": "map",
	".msi": "box",
	".php": "page_white_php",
	".pl": "page_white_code",
	".pptx": "page_white_powerpoint",
	".psd": "page_white_picture",
	".py": "page_white_code",
	".rar": "box",
	".rb": "page_white_ruby",
	".rpm": "box",
	".sass": "page_white_code",
	".scss": "page_white_code",
	".srt": "page_white_text",
	".tgz": "box",
	".xlsx": "page_white_excel",
}


def iconFor(name: str, isDirectory: bool = False) -> str:
	"""Returns the icon name for the given directory entry."""
	if isDirectory:
		return ICONS["folder"]
	ext = extension(name)
	if ext and (icon := ICONS.get(f".{ext}")):
		return icon
	content_type = guessContentType(name)
	if not content_type:
		return ICONS["default"]
	elif content_type in ICONS:
		return ICONS[content_type]
	suffix = content_type.split("+", 1)[1] if "+" in content_type else None
	if suffix and (icon := ICONS.get(f"+{suffix}")):
		return icon
	return ICONS.get(content_type.split("/", 1)[0], ICONS["default"])


# EOF
