import io
import zipfile

import pytest

from quickstage.errors import UpstreamError, ValidationError
from quickstage.sites import ingest
from quickstage.sites.ingest import (
    ASSET_CACHE_CONTROL,
    HTML_CACHE_CONTROL,
    ArchiveIngestor,
    IngestState,
    cache_control_for,
    entry_path,
    open_archive,
    validate_archive,
)
from tests.tools import MemoryObjectStore, make_zip, mark_encrypted


def test_entry_path():
    assert entry_path("index.html") == "index.html"
    assert entry_path("/assets/app.js") == "assets/app.js"
    assert entry_path("../evil.html") is None
    assert entry_path("assets/../../evil.html") is None
    assert entry_path("assets\\..\\evil.html") is None
    assert entry_path("assets\\app.js") == "assets/app.js"
    for name in [".", "./.", "/", "./"]:
        assert entry_path(name) is None, name
    # only whole segments count
    assert entry_path("assets/..hidden/file.txt") == "assets/..hidden/file.txt"


def test_cache_control_for():
    assert cache_control_for("index.html") == HTML_CACHE_CONTROL
    assert cache_control_for("docs/PAGE.HTML") == HTML_CACHE_CONTROL
    assert cache_control_for("app.js") == ASSET_CACHE_CONTROL


def test_open_archive_invalid():
    with pytest.raises(UpstreamError):
        open_archive(b"this is not a zip file")


def test_validate_archive_limits(monkeypatch):
    archive = zipfile.ZipFile(io.BytesIO(make_zip({f"f{i}.txt": "x" for i in range(5)})))
    assert len(validate_archive(archive)) == 5
    monkeypatch.setattr(ingest, "MAX_ARCHIVE_ENTRIES", 4)
    with pytest.raises(ValidationError, match="too many files"):
        validate_archive(archive)


def test_validate_archive_unpacked_size():
    archive = zipfile.ZipFile(io.BytesIO(make_zip({"big.txt": "x" * 5000, "small.txt": "x"})))
    assert len(validate_archive(archive, max_unpacked_bytes=5001)) == 2
    with pytest.raises(ValidationError, match="too large"):
        validate_archive(archive, max_unpacked_bytes=5000)


@pytest.mark.anyio
async def test_ingest():
    store = MemoryObjectStore()
    data = make_zip(
        {
            "index.html": "<html>home</html>",
            "assets/": "",
            "assets/app.js": "console.log(1)",
            "assets/logo.png": b"\x89PNG",
            "notes.unknownext": "?",
        }
    )
    result = await ArchiveIngestor(store).ingest("demo", data)
    assert (result.uploaded, result.skipped, result.total) == (4, 1, 5)
    assert result.state == IngestState.COMPLETED
    assert set(store.objects) == {
        "sites/demo/index.html",
        "sites/demo/assets/app.js",
        "sites/demo/assets/logo.png",
        "sites/demo/notes.unknownext",
    }
    index = store.objects["sites/demo/index.html"]
    assert index.body == b"<html>home</html>"
    assert index.content_type == "text/html; charset=utf-8"
    assert index.cache_control == HTML_CACHE_CONTROL
    app = store.objects["sites/demo/assets/app.js"]
    assert app.content_type == "application/javascript; charset=utf-8"
    assert app.cache_control == ASSET_CACHE_CONTROL
    assert store.objects["sites/demo/notes.unknownext"].content_type == "application/octet-stream"


@pytest.mark.anyio
async def test_ingest_skips_unsafe_entries():
    store = MemoryObjectStore()
    data = make_zip(
        {"index.html": "home", "../evil.html": "evil", "a/../../evil2.html": "evil"},
        symlinks={"link": "/etc/passwd"},
    )
    result = await ArchiveIngestor(store).ingest("demo", data)
    assert (result.uploaded, result.skipped) == (1, 3)
    assert set(store.objects) == {"sites/demo/index.html"}


@pytest.mark.anyio
async def test_ingest_file_object():
    store = MemoryObjectStore()
    result = await ArchiveIngestor(store).ingest("demo", io.BytesIO(make_zip({"index.html": "home"})))
    assert result.uploaded == 1
    assert store.objects["sites/demo/index.html"].body == b"home"


@pytest.mark.anyio
async def test_ingest_overwrites():
    store = MemoryObjectStore()
    store.add("sites/demo/index.html", "old")
    store.add("sites/demo/old.css", "body {}")
    await ArchiveIngestor(store).ingest("demo", make_zip({"index.html": "new"}))
    assert store.objects["sites/demo/index.html"].body == b"new"
    # files that are not in the new archive are left alone
    assert "sites/demo/old.css" in store.objects


@pytest.mark.anyio
async def test_ingest_rejected_writes_nothing():
    store = MemoryObjectStore()
    data = make_zip({"index.html": "x" * 2000, "app.js": "y" * 2000})
    with pytest.raises(ValidationError):
        await ArchiveIngestor(store, max_unpacked_bytes=3000).ingest("demo", data)
    assert store.objects == {}


@pytest.mark.anyio
async def test_ingest_invalid_archive():
    with pytest.raises(UpstreamError):
        await ArchiveIngestor(MemoryObjectStore()).ingest("demo", b"not a zip")


@pytest.mark.anyio
async def test_ingest_storage_failure():
    store = MemoryObjectStore(failing=["sites/demo/b.html"])
    data = make_zip({"a.html": "a", "b.html": "b", "c.html": "c"})
    with pytest.raises(UpstreamError):
        await ArchiveIngestor(store).ingest("demo", data)
    # entries written before the failure stay in place
    assert set(store.objects) == {"sites/demo/a.html"}


@pytest.mark.anyio
async def test_ingest_encrypted_entry():
    store = MemoryObjectStore()
    ingestor = ArchiveIngestor(store)
    with pytest.raises(UpstreamError):
        await ingestor.ingest("demo", mark_encrypted(make_zip({"index.html": "secret"})))
    assert ingestor.result.state == IngestState.FAILED
    assert store.objects == {}


@pytest.mark.anyio
async def test_ingest_root_entries_skipped():
    store = MemoryObjectStore()
    result = await ArchiveIngestor(store).ingest("demo", make_zip({".": "x", "./.": "y", "index.html": "home"}))
    assert (result.uploaded, result.skipped) == (1, 2)
    assert set(store.objects) == {"sites/demo/index.html"}


@pytest.mark.anyio
async def test_ingest_backslash_paths():
    store = MemoryObjectStore()
    result = await ArchiveIngestor(store).ingest("demo", make_zip({"assets\\app.js": "1", "assets\\..\\evil.js": "2"}))
    assert (result.uploaded, result.skipped) == (1, 1)
    assert set(store.objects) == {"sites/demo/assets/app.js"}
    assert store.objects["sites/demo/assets/app.js"].content_type == "application/javascript; charset=utf-8"


@pytest.mark.anyio
async def test_ingest_too_many_entries():
    store = MemoryObjectStore()
    ingestor = ArchiveIngestor(store)
    data = make_zip({f"page{i}.html": "x" for i in range(2001)})
    with pytest.raises(ValidationError) as e:
        await ingestor.ingest("demo", data)
    assert str(e.value) == "Zip has too many files (max 2000)."
    assert e.value.status_code == 400
    assert ingestor.result.state == IngestState.REJECTED
    assert store.puts == [] and store.gets == []
    assert store.objects == {}

    # exactly at the limit is fine
    result = await ArchiveIngestor(store).ingest("demo", make_zip({f"page{i}.html": "x" for i in range(2000)}))
    assert result.uploaded == 2000


@pytest.mark.anyio
async def test_ingest_twice_is_idempotent():
    store = MemoryObjectStore()
    data = make_zip({"index.html": "home", "assets/": "", "assets/app.js": "1", "../evil.js": "evil"})
    first = await ArchiveIngestor(store).ingest("demo", data)
    after_first = dict(store.objects)
    second = await ArchiveIngestor(store).ingest("demo", data)
    assert (first.uploaded, first.skipped) == (second.uploaded, second.skipped) == (2, 2)
    assert store.objects == after_first


@pytest.mark.anyio
async def test_ingest_state():
    ingestor = ArchiveIngestor(MemoryObjectStore())
    assert ingestor.result is None
    result = await ingestor.ingest("demo", make_zip({"index.html": "home"}))
    assert result is ingestor.result
    assert result.state == IngestState.COMPLETED
