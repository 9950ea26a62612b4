"""Common literal values used across signum_pages.

These constants keep archive folder names, path prefixes, and limits
centralized so the resolver, renderer, exporter, and tests can import the same
values without drifting. Intended for internal use within the signum_pages
package.

Examples
--------
>>> from signum_pages import _constants
>>> _constants.SOURCE_FOLDER
'_signum'
>>> _constants.PAGINATION_SEGMENT.format(page=2)
'page/2'
"""

SOURCE_FOLDER = "_signum"
CONTENT_PREFIX = "content/"
CONTENT_SUFFIX = ".md"
INDEX_SLUG = "index"
PAGINATION_SEGMENT = "page/{page}"
DEFAULT_BASE_URL = "https://example.com"
RSS_ITEM_LIMIT = 20
DEFAULT_PAGE_LAYOUT = "page"
DEFAULT_COLLECTION_LAYOUT = "listing"
GENERATOR_VERSION = "SignumPages/1.3.0"
