from concurrent.futures import ThreadPoolExecutor

from app.database import DocumentStore, StoreError
from app.services.cart import CartUpdateResult, UserNotFound, get_cart, update_cart


class BrokenSaveStore(DocumentStore):
    """Finds users fine, fails every write."""

    def __init__(self):
        self.connects = 0

    def connect(self):
        self.connects += 1
        return self

    def close(self):
        pass

    def find_by_id(self, collection, doc_id):
        return {"id": doc_id, "cartItem": {"old": 1}}

    def save(self, collection, document):
        raise StoreError("disk full")


class ExplodingStore(BrokenSaveStore):
    def find_by_id(self, collection, doc_id):
        raise RuntimeError("driver bug")


def test_update_returns_full_document(store, temp_user):
    result = update_cart(store, temp_user["id"], {"cartData": {"p1": 2}})
    assert result.success
    assert result.error is None
    assert result.user["id"] == temp_user["id"]
    assert result.user["email"] == temp_user["email"]
    assert result.user["cartItem"] == {"p1": 2}


def test_failure_kinds_are_distinguishable(store, temp_user):
    missing = update_cart(store, "ghost", {"cartData": {}})
    assert (missing.success, missing.error, missing.message) == (False, "user_not_found", "User not found")

    no_cart = update_cart(store, temp_user["id"], {"cart": {}})
    assert no_cart.error == "invalid_payload"

    no_identity = update_cart(store, None, {"cartData": {}})
    assert no_identity.error == "user_not_found"


def test_payload_is_checked_before_touching_the_store():
    s = BrokenSaveStore()
    result = update_cart(s, "u1", "not an object")
    assert result.error == "invalid_payload"
    assert s.connects == 0


def test_save_failure_is_reported_with_message():
    s = BrokenSaveStore()
    result = update_cart(s, "u1", {"cartData": {"p1": 1}})
    assert s.connects == 1
    assert not result.success
    assert result.error == "store_unavailable"
    assert result.message == "disk full"


def test_unexpected_errors_are_flattened(caplog):
    result = update_cart(ExplodingStore(), "u1", {"cartData": {}})
    assert not result.success
    assert result.error == "operation_failed"
    assert result.message == "driver bug"
    assert "Unexpected error while updating cart" in caplog.text


def test_failed_result_falls_back_to_exception_name():
    result = CartUpdateResult.failed(UserNotFound())
    assert result.message == "UserNotFound"
    assert result.error == "user_not_found"


def test_get_cart(store, temp_user):
    update_cart(store, temp_user["id"], {"cartData": {"p1": 4}})
    result = get_cart(store, temp_user["id"])
    assert result.success
    assert result.user["cartItem"] == {"p1": 4}
    assert get_cart(store, "ghost").error == "user_not_found"


def test_out_of_order_updates_keep_the_last_persisted(store, temp_user):
    a = {"a": 1}
    b = {"b": 2}
    # A was sent first but B's write lands first
    update_cart(store, temp_user["id"], {"cartData": b})
    update_cart(store, temp_user["id"], {"cartData": a})
    assert store.find_by_id("users", temp_user["id"])["cartItem"] == a


def test_concurrent_updates_never_merge(store, temp_user):
    payloads = [{f"p{i}": i} for i in range(1, 9)]

    with ThreadPoolExecutor(max_workers=4) as pool:
        results = list(pool.map(lambda cart: update_cart(store, temp_user["id"], {"cartData": cart}), payloads))

    assert all(r.success for r in results)
    final = store.find_by_id("users", temp_user["id"])["cartItem"]
    # one whole payload survives
    assert final in payloads
