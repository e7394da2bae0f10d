import pytest

from aaas_core import AccessLedger
from aaas_core.storage import InMemoryStorage, SQLiteStorage
from aaas_core.transport import LocalAdapter

P1 = "0x" + "11" * 20
P2 = "0x" + "22" * 20
P3 = "0x" + "33" * 20
P4 = "0x" + "44" * 20
P5 = "0x" + "55" * 20
T = 1_700_000_000


@pytest.fixture(params=["memory", "sqlite"])
def store(request, tmp_path):
    if request.param == "memory":
        s = InMemoryStorage()
    else:
        s = SQLiteStorage(str(tmp_path / "ledger.db"))
    yield s
    s.close()


@pytest.fixture
def bus():
    return LocalAdapter(record=True)


@pytest.fixture
def ledger(store, bus):
    return AccessLedger(store=store, transport=bus, role_creator=P1)


@pytest.fixture
def asset(ledger):
    ledger.create_asset(P1, "A1", "d", now=T)
    return "A1"
