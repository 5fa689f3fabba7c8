# Ensure tests import modules from this service directory first so
# `import path_router.*` resolves to the checkout rather than an installed copy.
import os
import sys

SERVICE_ROOT = os.path.dirname(__file__)

if SERVICE_ROOT not in sys.path:
    sys.path.insert(0, SERVICE_ROOT)
