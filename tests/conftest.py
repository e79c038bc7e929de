import os
import tempfile

# Settings are read once at import of config/database; keep them off ./data.
os.environ.setdefault("EXPENSES_DATA_DIR", tempfile.mkdtemp(prefix="expenses-tests-"))
os.environ.setdefault("EXPENSES_TIMEZONE", "America/Toronto")
