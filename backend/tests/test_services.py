import pytest

from app import config, services
from app.bulk_delete import BatchFailure, BulkDeleteReport
from app.errors import InvalidArgument, StoreUnavailable
from app.object_store import ObjectStore
from app.services import StorageService


def make_service(client) -> StorageService:
    return StorageService(ObjectStore(client, "files"))


@pytest.mark.parametrize("limit, expected", [(None, 50), (0, 50), (-4, 50), (25, 25), (5000, 1000)])
def test_normalize_page_size(limit, expected):
    assert services.normalize_page_size(limit) == expected


def test_list_storage_uses_public_domain(make_client, monkeypatch):
    monkeypatch.setattr(config, "S3_PUBLIC_DOMAIN", "files.example.com")
    service = make_service(make_client(["a.txt"]))

    listing = service.list_storage()

    assert listing.files[0].url.startswith("https://files.example.com/a.txt?")


def test_upload_url_is_not_rewritten(fake_client, monkeypatch):
    monkeypatch.setattr(config, "S3_PUBLIC_DOMAIN", "files.example.com")
    service = make_service(fake_client)

    result = service.create_upload_url("new.bin", None)

    assert result.url.startswith("https://account.r2.cloudflarestorage.com/files/new.bin")
    assert fake_client.presign_calls == [("put_object", "new.bin", 300, None)]


def test_list_storage_stats_without_signing(make_client):
    client = make_client(["a/1.txt", "a/2.txt", "b.txt"])
    service = make_service(client)

    listing = service.list_storage(prefix="a/", include_all_stats=True)

    assert listing.stats.total_files == 3
    assert listing.stats.total_size == 1 + 2 + 3
    assert sorted(call[1] for call in client.presign_calls) == ["a/1.txt", "a/2.txt"]


def test_bulk_delete_batch_size_comes_from_config(make_client, monkeypatch):
    monkeypatch.setattr(config, "DELETE_BATCH_SIZE", 2)
    client = make_client(["a", "b", "c"])

    report = make_service(client).bulk_delete(["a", "b", "c"])

    assert report.deleted_count == 3
    assert len(client.delete_batches) == 2


def test_delete_object_propagates_store_errors(fake_client):
    fake_client.fail_with = ("AccessDenied", "Access Denied")

    with pytest.raises(StoreUnavailable) as excinfo:
        make_service(fake_client).delete_object("a.txt")

    assert excinfo.value.message == "Access Denied"


@pytest.mark.parametrize("key", [None, "", "   "])
def test_put_object_requires_key(fake_client, key):
    with pytest.raises(InvalidArgument):
        make_service(fake_client).put_object(key, b"data", None)


def test_bulk_delete_response_distinguishes_failed_batches():
    report = BulkDeleteReport(
        deleted_keys=["a"],
        errors=[{"key": "b", "code": "AccessDenied", "message": "Access Denied"}],
        failed_batches=[BatchFailure(batch_number=2, keys=["c"], message="timeout")],
    )

    response = services.bulk_delete_response(report)

    assert response.success is False
    assert response.error == "timeout"
    assert response.deleted == 1
    assert response.errors[0].key == "b"
    assert response.failed_batches[0].keys == ["c"]


def test_bulk_delete_response_omits_failed_batches_on_success():
    report = BulkDeleteReport(deleted_keys=["a", "b"], errors=[], failed_batches=[])

    response = services.bulk_delete_response(report)

    assert response.success is True
    assert response.failed_batches is None
    assert response.model_dump(by_alias=True, exclude_none=True) == {
        "success": True,
        "deleted": 2,
        "errors": [],
    }


def test_delete_missing_object_succeeds_like_the_store(fake_client):
    make_service(fake_client).delete_object("never-uploaded.txt")

    assert "never-uploaded.txt" not in fake_client.objects
