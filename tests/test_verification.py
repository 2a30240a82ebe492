import pytest

from backend.app.errors import InvalidArgument, Unauthenticated
from backend.app.services.auth import check_phone_verification, generate_otp, start_phone_verification
from backend.app.services.verification import SQLiteVerificationStore, VerificationStore

from conftest import RecordingSender


class FakeClock:
    def __init__(self, now: float = 1_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(db, clock):
    return SQLiteVerificationStore(db, clock=clock)


async def test_entry_is_visible_until_ttl(store, clock):
    await store.put("abc", {"phone": "+14155550100"}, ttl_seconds=60)

    clock.now += 59
    assert await store.get("abc") == {"phone": "+14155550100"}

    clock.now += 1
    assert await store.get("abc") is None


async def test_replace_keeps_expiry(store, clock):
    await store.put("abc", {"attempts": 0}, ttl_seconds=60)
    clock.now += 30

    assert await store.replace("abc", {"attempts": 1})
    assert await store.get("abc") == {"attempts": 1}

    clock.now += 30
    assert await store.get("abc") is None
    assert not await store.replace("abc", {"attempts": 2})


async def test_purge_expired(store, clock, db):
    await store.put("old", {}, ttl_seconds=10)
    await store.put("new", {}, ttl_seconds=100)
    clock.now += 50

    assert await store.purge_expired() == 1
    assert await db.count("verification_codes") == 1


async def test_delete(store):
    await store.put("abc", {}, ttl_seconds=60)
    await store.delete("abc")
    assert await store.get("abc") is None


def test_generate_otp_has_six_digits():
    for _ in range(50):
        code = generate_otp()
        assert len(code) == 6 and code.isdigit()


async def test_code_is_single_use(store):
    sender = RecordingSender()
    verification_id = await start_phone_verification(store, sender, "+14155550100")
    phone, code = sender.sent[0]

    assert await check_phone_verification(store, verification_id, code) == phone
    with pytest.raises(Unauthenticated):
        await check_phone_verification(store, verification_id, code)


async def test_wrong_code_counts_attempts(store):
    sender = RecordingSender()
    verification_id = await start_phone_verification(store, sender, "+14155550100")
    _, code = sender.sent[0]
    wrong = "000000" if code != "000000" else "111111"

    for _ in range(2):
        with pytest.raises(InvalidArgument):
            await check_phone_verification(store, verification_id, wrong, max_attempts=3)
    with pytest.raises(Unauthenticated):
        await check_phone_verification(store, verification_id, wrong, max_attempts=3)

    # После исчерпания попыток верный код тоже не принимается
    with pytest.raises(Unauthenticated):
        await check_phone_verification(store, verification_id, code, max_attempts=3)


async def test_expired_code_is_rejected(store, clock):
    sender = RecordingSender()
    verification_id = await start_phone_verification(store, sender, "+14155550100")
    _, code = sender.sent[0]

    clock.now += 10_000
    with pytest.raises(Unauthenticated):
        await check_phone_verification(store, verification_id, code)


async def test_non_ascii_code_is_a_wrong_code(store):
    sender = RecordingSender()
    verification_id = await start_phone_verification(store, sender, "+14155550100")
    _, code = sender.sent[0]

    with pytest.raises(InvalidArgument):
        await check_phone_verification(store, verification_id, "é12345")
    assert await check_phone_verification(store, verification_id, code) == "+14155550100"


def test_store_backend_must_implement_every_operation():
    class ReadOnlyStore(VerificationStore):
        async def get(self, key):
            return None

    with pytest.raises(TypeError):
        ReadOnlyStore()
