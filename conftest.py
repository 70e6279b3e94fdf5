# Ensure tests import modules from this service directory first and never
# write the SQLite database into the working tree.
import os
import sys
import tempfile

SERVICE_ROOT = os.path.dirname(__file__)

if SERVICE_ROOT not in sys.path:
    sys.path.insert(0, SERVICE_ROOT)

os.environ.setdefault(
    "DATABASE_PATH", os.path.join(tempfile.mkdtemp(prefix="browser-proxy-"), "test.db")
)
