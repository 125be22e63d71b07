import pytest

from tgroute.session.store import StoreFile, StoreMemory


async def _generic_store_check(store):
    await store.set("key", b"value")
    assert await store.get("key") == b"value"

    await store.delete("key")
    assert await store.get("key") is None


@pytest.mark.asyncio
async def test_store_memory_generic():
    await _generic_store_check(StoreMemory())


@pytest.mark.asyncio
async def test_store_file_generic(tmp_path):
    await _generic_store_check(StoreFile(tmp_path))


@pytest.mark.asyncio
async def test_store_memory_overwrite():
    store = StoreMemory()
    await store.set("key", b"one")
    await store.set("key", b"two")
    assert await store.get("key") == b"two"


@pytest.mark.asyncio
async def test_store_memory_missing_key():
    store = StoreMemory()
    await store.delete("missing")
    assert await store.get("missing") is None


def test_store_file_defaults(tmp_path):
    store = StoreFile(tmp_path)
    assert store.directory == tmp_path
    assert store.perms == 0o666
    assert list(store.transform("abc")) == ["abc"]


def test_store_file_custom(tmp_path):
    store = StoreFile(tmp_path, perms=0o644, transform=lambda key: key.split("_"))
    assert store.directory == tmp_path
    assert store.perms == 0o644
    assert list(store.transform("a_b")) == ["a", "b"]


def test_store_file_path_for(tmp_path):
    store = StoreFile(tmp_path, transform=lambda key: key.split("_"))
    assert store.path_for("k_e_y") == tmp_path / "k" / "e" / "y.session"


@pytest.mark.asyncio
async def test_store_file_set_writes_nested_file(tmp_path):
    store = StoreFile(tmp_path, transform=lambda key: key.split("_"))
    await store.set("k_e_y", b"value")
    assert (tmp_path / "k" / "e" / "y.session").read_bytes() == b"value"


@pytest.mark.asyncio
async def test_store_file_overwrite(tmp_path):
    store = StoreFile(tmp_path)
    await store.set("key", b"a longer first value")
    await store.set("key", b"short")
    assert await store.get("key") == b"short"


@pytest.mark.asyncio
async def test_store_file_missing_key(tmp_path):
    store = StoreFile(tmp_path)
    await store.delete("missing")
    assert await store.get("missing") is None
    assert not (tmp_path / "missing.session").exists()