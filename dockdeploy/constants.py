"""
dockdeploy Constants

Centralized constants for magic values, defaults, and configuration.
"""

# Default Session Configuration
DEFAULT_BRANCH = "main"
DEFAULT_APP_NAME = "myapp"
DEFAULT_LOCAL_DIR = "repo"
DEFAULT_REMOTE_DIR_FORMAT = "/home/{user}/repo"
DEFAULT_SSH_PORT = 22

# SSH Timeout Configuration
SSH_CONNECTION_TIMEOUT = 10
DEFAULT_COMMAND_TIMEOUT = 1800
PROBE_TIMEOUT = 60
SSH_TRANSPORT_EXIT_CODE = 255

# Container Runtime
DOCKER_SERVICE = "docker"
DOCKER_GROUP = "docker"
COMPOSE_FILE_NAMES = [
    "docker-compose.yml",
    "docker-compose.yaml",
    "compose.yml",
    "compose.yaml",
]
COMPOSE_RELEASE_URL = (
    "https://github.com/docker/compose/releases/latest/download/"
    "docker-compose-$(uname -s)-$(uname -m)"
)
COMPOSE_BINARY_PATH = "/usr/local/bin/docker-compose"

# Shell snippet that picks the standalone binary, falling back to the plugin
COMPOSE_SELECT_SNIPPET = (
    "if command -v docker-compose >/dev/null 2>&1; "
    'then COMPOSE="docker-compose"; else COMPOSE="docker compose"; fi'
)

# Reverse Proxy
NGINX_SERVICE = "nginx"
NGINX_CONF_DIR = "/etc/nginx/conf.d"
NGINX_DEFAULT_SITE = "/etc/nginx/sites-enabled/default"
NGINX_MAIN_CONF = "/etc/nginx/nginx.conf"
PROXY_LISTEN_PORT = 80
PROXY_TEMPLATE = "nginx_proxy.conf.j2"
HTTP_PROBE_TIMEOUT = 10
# Answers nginx gives when the upstream app is unreachable
PROXY_GATEWAY_ERRORS = ("502", "503", "504")

# Log Configuration
DEFAULT_LOG_DIR = "logs"
LOG_FILE_FORMAT = "deploy_%Y%m%d.log"
LOG_DATETIME_FORMAT = "%Y-%m-%d %H:%M:%S"

# Environment variable prefix for session inputs
ENV_PREFIX = "DOCKDEPLOY_"

# Tool Names (for doctor check)
REQUIRED_TOOLS = [
    "ssh",
    "scp",
    "git",
]

# Sensitive Keywords (for secret masking)
SENSITIVE_KEYWORDS = [
    "PASSWORD",
    "TOKEN",
    "SECRET",
    "KEY",
]
MASK = "***"

# Success Messages
SUCCESS_DEPLOYED = "Deployment completed successfully"
SUCCESS_CLEANED_UP = "Cleanup completed"

# Pipeline Stage Names
STAGE_REPOSITORY = "Repository checkout"
STAGE_CONNECTIVITY = "Connectivity check"
STAGE_PROVISION = "Remote environment preparation"
STAGE_TRANSFER = "File transfer"
STAGE_DEPLOY = "Application deployment"
STAGE_PROXY = "Proxy configuration"
STAGE_VALIDATE = "Deployment validation"
STAGE_CLEANUP = "Cleanup"
