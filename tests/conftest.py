import os
import tempfile
from pathlib import Path

import pytest
from sqlalchemy.orm import sessionmaker

# Must run before noisemap.config / noisemap.db are imported.
_TEST_DB_DIR = Path(tempfile.mkdtemp(prefix="noisemap-tests-"))
os.environ["NOISEMAP_DB_URL"] = f"sqlite:///{_TEST_DB_DIR / 'app.db'}"
os.environ["ENABLE_FLIGHT_INGESTOR"] = "false"
os.environ["NOISEMAP_USE_SSM"] = "false"
os.environ.pop("TRAFFIC_API_KEY", None)

from noisemap.db import build_engine, init_db  # noqa: E402
from noisemap.services.snapshot_store import SnapshotStore  # noqa: E402


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def session_factory(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path}/emissions.db")
    init_db(bind=engine)
    try:
        yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    finally:
        engine.dispose()


@pytest.fixture
def store(session_factory):
    return SnapshotStore(session_factory=session_factory)
