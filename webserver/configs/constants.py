"""
Webserver Constants

Default values for every recognized startup option, plus bridge timing.
"""

# --- Listener ---

DEFAULT_PORT = 80
DEFAULT_HOST = "0.0.0.0"

# --- TLS ---

DEFAULT_KEY_STORE_PATH = "server-keystore.jks"
DEFAULT_KEY_STORE_PASSWORD = "wibble"

# --- Static Files ---

DEFAULT_WEB_ROOT = "web"
DEFAULT_INDEX_PAGE = "index.html"
GZIP_SUFFIX = ".gz"

# --- Bridge ---

DEFAULT_BRIDGE_PREFIX = "/eventbus"
DEFAULT_AUTH_TIMEOUT_MILLIS = 5 * 60 * 1000
DEFAULT_AUTH_ADDRESS = "vertx.basicauthmanager.authorise"

# Seconds a bridged request waits for the bus to reply
DEFAULT_REPLY_TIMEOUT = 30.0

# --- Config File ---

DEFAULT_CONFIG_FILE = "webserver.yaml"
