import os
import tempfile

_DB_DIR = tempfile.mkdtemp(prefix="placement-")

os.environ.setdefault("ALLOW_SQLITE_FOR_TESTS", "true")
os.environ.setdefault("DATABASE_URL", f"sqlite:///{os.path.join(_DB_DIR, 'inventory.db')}")
os.environ.setdefault("SCHEDULER_URL", "http://scheduler.test")
