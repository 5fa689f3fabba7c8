import os

SERVICE_NAME = os.getenv("SERVICE_NAME", "path-router")

# JSON object mapping route patterns to target specs, in priority order
ROUTES = os.environ.get("ROUTES", "")
ROUTES_FILE = os.environ.get("ROUTES_FILE", "")

PROXY_TIMEOUT = int(os.environ.get("PROXY_TIMEOUT", "300"))  # 5 minutes default

OTLP_ENDPOINT = os.getenv("OTLP_ENDPOINT")
OTLP_HEADERS = os.getenv("OTLP_HEADERS", "")
