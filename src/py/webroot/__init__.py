from .config import ServerConfig, configure  # NOQA: F401
from .documents import ErrorDocuments, ErrorKind  # NOQA: F401
from .errors import ConfigurationError, InvalidInput  # NOQA: F401
from .http.model import HTTPRequest, HTTPResponse  # NOQA: F401
from .listing import ListingEntry, listEntries, renderListing  # NOQA: F401
from .paths import sanitize  # NOQA: F401
from .resolver import Outcome, RequestLog, RequestResolver  # NOQA: F401
from .server import run  # NOQA: F401
from .utils.files import contentType  # NOQA: F401

# EOF
